"""Inbound request envelope decoding and accessors.

Raw JSON from the voice platform is deserialized into the ASK SDK request model
and wrapped in a ``HandlerInput``; predicates and handlers only ever read the
request through these helpers and ``ask_sdk_core.utils``.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from ask_sdk_core.attributes_manager import AbstractPersistenceAdapter, AttributesManager
from ask_sdk_core.handler_input import HandlerInput
from ask_sdk_core.serialize import DefaultSerializer
from ask_sdk_core.utils import get_request_type, get_supported_interfaces, get_user_id
from ask_sdk_model import Request, RequestEnvelope

JsonDict = Dict[str, Any]

INSTALL_REQUEST = "Alexa.DataStore.PackageManager.UsagesInstalled"
REMOVE_REQUEST = "Alexa.DataStore.PackageManager.UsagesRemoved"
UPDATE_REQUEST = "Alexa.DataStore.PackageManager.UpdateRequest"
INSTALLATION_ERROR = "Alexa.DataStore.PackageManager.InstallationError"
USER_EVENT_REQUEST = "Alexa.Presentation.APL.UserEvent"
LAUNCH_REQUEST = "LaunchRequest"
INTENT_REQUEST = "IntentRequest"
SESSION_ENDED_REQUEST = "SessionEndedRequest"

serializer = DefaultSerializer()


def deserialize_envelope(payload: JsonDict) -> RequestEnvelope:
    return serializer.deserialize(json.dumps(payload), RequestEnvelope)


def build_handler_input(
    request_envelope: RequestEnvelope,
    persistence_adapter: Optional[AbstractPersistenceAdapter] = None,
    context: Any = None,
) -> HandlerInput:
    attributes_manager = AttributesManager(
        request_envelope=request_envelope, persistence_adapter=persistence_adapter
    )
    return HandlerInput(
        request_envelope=request_envelope,
        attributes_manager=attributes_manager,
        context=context,
    )


def get_request(handler_input: HandlerInput) -> Request:
    return handler_input.request_envelope.request


def request_type_of(handler_input: Optional[HandlerInput]) -> Optional[str]:
    """Request type, or None when there is no decoded request to read it from."""
    if handler_input is None or handler_input.request_envelope.request is None:
        return None
    return get_request_type(handler_input)


def require_user_id(handler_input: HandlerInput) -> str:
    user_id = get_user_id(handler_input)
    if not user_id:
        raise ValueError("request envelope carries no context.System.user.userId")
    return user_id


def supports_apl(handler_input: HandlerInput) -> bool:
    interfaces = get_supported_interfaces(handler_input)
    return interfaces is not None and interfaces.alexa_presentation_apl is not None


def get_widget_instance_id(handler_input: HandlerInput) -> str:
    """Instance id of the first widget usage carried by a package manager event."""
    payload = getattr(get_request(handler_input), "payload", None)
    usages = getattr(payload, "usages", None) or []
    instance_id = getattr(usages[0], "instance_id", None) if usages else None
    if not instance_id:
        raise ValueError("package manager event carries no usages[0].instanceId")
    return instance_id


def get_user_event_arguments(handler_input: HandlerInput) -> List[Any]:
    return list(getattr(get_request(handler_input), "arguments", None) or [])


__all__ = [
    "INSTALLATION_ERROR",
    "INSTALL_REQUEST",
    "INTENT_REQUEST",
    "LAUNCH_REQUEST",
    "REMOVE_REQUEST",
    "SESSION_ENDED_REQUEST",
    "UPDATE_REQUEST",
    "USER_EVENT_REQUEST",
    "JsonDict",
    "build_handler_input",
    "deserialize_envelope",
    "get_request",
    "get_user_event_arguments",
    "get_widget_instance_id",
    "request_type_of",
    "require_user_id",
    "serializer",
    "supports_apl",
]
