"""Root conftest: seeds os.environ from .env.test before Settings() is built.

Variables already present in the environment win, so CI can point the
suite at its own Postgres and Redis.
"""
from __future__ import annotations

import os
from pathlib import Path


def _load_env_file(path: Path) -> None:
    for raw in path.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.removeprefix("export ").partition("=")
        if not sep:
            continue
        os.environ.setdefault(key.strip(), value.strip().strip("'\""))


_env_test = Path(__file__).resolve().parent / ".env.test"
if _env_test.exists():
    _load_env_file(_env_test)
