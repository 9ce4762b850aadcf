from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from internal_chat.application.dto.events import BroadcastEnvelope


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_envelope(envelope: BroadcastEnvelope) -> str:
    return json.dumps(envelope.to_dict(), cls=_Encoder)


def deserialize_envelope(raw: str | bytes) -> BroadcastEnvelope:
    return BroadcastEnvelope.from_dict(json.loads(raw))
