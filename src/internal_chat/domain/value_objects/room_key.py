"""Canonical room keys.

A room is identified inside its account by a deterministic string:

    general               -> "general"
    team 7                -> "team-7"
    direct between 9 & 4  -> "direct-4-9"

Direct keys sort the pair numerically so the key does not depend on who
opened the conversation.
"""
from __future__ import annotations

GENERAL_KEY = "general"
TEAM_PREFIX = "team-"
DIRECT_PREFIX = "direct-"


def general_key() -> str:
    return GENERAL_KEY


def team_key(team_id: int) -> str:
    return f"{TEAM_PREFIX}{int(team_id)}"


def direct_pair(user_a: int, user_b: int) -> tuple[int, int]:
    lo, hi = sorted((int(user_a), int(user_b)))
    return lo, hi


def direct_key(user_a: int, user_b: int) -> str:
    lo, hi = direct_pair(user_a, user_b)
    return f"{DIRECT_PREFIX}{lo}-{hi}"


def parse_direct_key(key: str) -> tuple[int, int]:
    """Return the sorted participant pair encoded in a direct key.

    Legacy rows stored the bare pair (``"4-9"``); both forms are accepted.
    Raises ``ValueError`` for anything else.
    """
    raw = key[len(DIRECT_PREFIX):] if key.startswith(DIRECT_PREFIX) else key
    left, sep, right = raw.partition("-")
    if not sep or not left.isdigit() or not right.isdigit():
        raise ValueError(f"not a direct room key: {key!r}")
    return direct_pair(int(left), int(right))


def normalize_direct_key(key: str) -> str:
    return direct_key(*parse_direct_key(key))


def counterpart_of(key: str, user_id: int) -> int | None:
    """The other participant of a direct room, or None if ``user_id`` is not in it."""
    lo, hi = parse_direct_key(key)
    if user_id == lo:
        return hi
    if user_id == hi:
        return lo
    return None
