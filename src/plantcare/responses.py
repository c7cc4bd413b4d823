from __future__ import annotations

from typing import Any, Dict, Optional

from ask_sdk_model import Response, ResponseEnvelope

from .envelope import serializer

JsonDict = Dict[str, Any]

RESPONSE_FORMAT_VERSION = "1.0"


def serialize_response(
    response: Optional[Response],
    *,
    user_agent: Optional[str] = None,
    session_attributes: Optional[JsonDict] = None,
) -> JsonDict:
    """Wrap a built response in the outbound envelope and render it as JSON."""
    envelope = ResponseEnvelope(
        version=RESPONSE_FORMAT_VERSION,
        session_attributes=session_attributes or {},
        user_agent=user_agent,
        response=response if response is not None else Response(),
    )
    return serializer.serialize(envelope)


__all__ = ["RESPONSE_FORMAT_VERSION", "serialize_response"]
