"""Plant care skill handlers, their predicates and the ordered chain that binds them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Optional, Tuple

from ask_sdk_core.attributes_manager import AbstractPersistenceAdapter
from ask_sdk_core.handler_input import HandlerInput
from ask_sdk_core.response_helper import ResponseFactory
from ask_sdk_core.utils import get_intent_name, is_intent_name, is_request_type
from ask_sdk_model import Response

from .attributes import load_attributes, persist_attributes
from .clients import SkillClients
from .datastore import sync_watered_date
from .documents import launch_datasources, plant_care_datasources, render_directive
from .envelope import (
    INSTALLATION_ERROR,
    INSTALL_REQUEST,
    INTENT_REQUEST,
    LAUNCH_REQUEST,
    REMOVE_REQUEST,
    SESSION_ENDED_REQUEST,
    UPDATE_REQUEST,
    USER_EVENT_REQUEST,
    get_request,
    get_user_event_arguments,
    get_widget_instance_id,
    request_type_of,
    require_user_id,
    supports_apl,
)
from .logging import log_json
from .models import UserAction
from .router import HandlerDescriptor, RequestRouter

logger = logging.getLogger(__name__)

Predicate = Callable[[HandlerInput], bool]
SkillHandler = Callable[[HandlerInput, "SkillServices"], Any]

PLANT_CARE_INTENT = "PlantCareIntent"
HELP_INTENT = "AMAZON.HelpIntent"
CANCEL_INTENT = "AMAZON.CancelIntent"
STOP_INTENT = "AMAZON.StopIntent"
FALLBACK_INTENT = "AMAZON.FallbackIntent"

WELCOME_SPEECH = (
    "Welcome to the Plant Care Skill. You can say water my plant to water it "
    "or say help to know more. What would you like to do?"
)
PLANT_CARE_SPEECH = "Tap on the button to water your plant."
WATERED_SPEECH = "The plant has now been watered."
HELP_SPEECH = (
    "The Plant Care Skill lets you keep track of if and when you watered your plant. "
    "You can say water my plant to water it."
)
GOODBYE_SPEECH = "Goodbye!"
FALLBACK_SPEECH = "Sorry, I don't know about that. Please try again."
INSTALL_ERROR_SPEECH = "Sorry, there was an error installing the widget. Please try again later"
ERROR_SPEECH = "Sorry, I had trouble doing what you asked. Please try again."


@dataclass
class SkillServices:
    """Dependencies handed to every handler."""

    persistence_adapter: AbstractPersistenceAdapter
    clients: SkillClients
    user_agent: Optional[str] = None


def _to_dict(model: Any) -> Any:
    return model.to_dict() if model is not None else None


async def _sync(services: SkillServices, user_id: str, last_watered_date: str) -> bool:
    ok, status, _ = await sync_watered_date(services.clients, user_id, last_watered_date)
    if not ok:
        logger.warning("widget sync for %s did not complete (status=%s)", user_id, status)
    return ok


# --- widget package lifecycle ---

async def handle_widget_installed(handler_input: HandlerInput, services: SkillServices) -> Response:
    user_id = require_user_id(handler_input)
    instance_id = get_widget_instance_id(handler_input)
    attributes = await load_attributes(handler_input)

    if attributes.add_instance(instance_id):
        await persist_attributes(handler_input, attributes)
        log_json(
            logging.INFO,
            "widget_installed",
            user_id=user_id,
            instance_id=instance_id,
            instances=len(attributes.installed_instance_ids),
        )

    # Resync even for a known instance so the new widget shows the current date.
    await _sync(services, user_id, attributes.last_watered_date)
    return handler_input.response_builder.response


async def handle_widget_removed(handler_input: HandlerInput, services: SkillServices) -> Response:
    user_id = require_user_id(handler_input)
    instance_id = get_widget_instance_id(handler_input)
    attributes = await load_attributes(handler_input)

    if attributes.remove_instance(instance_id):
        await persist_attributes(handler_input, attributes)
        log_json(
            logging.INFO,
            "widget_removed",
            user_id=user_id,
            instance_id=instance_id,
            instances=len(attributes.installed_instance_ids),
        )
    return handler_input.response_builder.response


def handle_widget_updated(handler_input: HandlerInput, services: SkillServices) -> Response:
    log_json(logging.INFO, "widget_updated", request=_to_dict(get_request(handler_input)))
    return handler_input.response_builder.response


def handle_installation_error(handler_input: HandlerInput, services: SkillServices) -> Response:
    error = getattr(get_request(handler_input), "error", None)
    log_json(logging.WARNING, "widget_installation_error", error=_to_dict(error))
    return handler_input.response_builder.speak(INSTALL_ERROR_SPEECH).response


# --- APL user events ---

async def handle_user_event(handler_input: HandlerInput, services: SkillServices) -> Response:
    """Serve a SendEvent from the widget or from the skill's own plant care view."""
    arguments = get_user_event_arguments(handler_input)
    if not arguments:
        raise ValueError("user event carries no arguments")
    action = UserAction(arguments[0])

    if action is UserAction.open_skill:
        return handle_launch(handler_input, services)

    if len(arguments) < 2 or not isinstance(arguments[1], str):
        raise ValueError(f"user event {action.value} carries no watered date")
    watered_date = arguments[1]

    builder = handler_input.response_builder
    if action is UserAction.watered_from_widget:
        builder.set_should_end_session(True)
    else:
        builder.speak(WATERED_SPEECH).set_should_end_session(False)

    user_id = require_user_id(handler_input)
    attributes = await load_attributes(handler_input)
    attributes.last_watered_date = watered_date
    await persist_attributes(handler_input, attributes)
    log_json(logging.INFO, "plant_watered", user_id=user_id, date=watered_date, source=action.value)

    await _sync(services, user_id, watered_date)
    return builder.response


# --- conversation ---

def handle_launch(handler_input: HandlerInput, services: SkillServices) -> Response:
    builder = handler_input.response_builder
    if supports_apl(handler_input):
        builder.add_directive(render_directive("launch_template", launch_datasources()))
    return builder.speak(WELCOME_SPEECH).ask(WELCOME_SPEECH).response


async def handle_plant_care(handler_input: HandlerInput, services: SkillServices) -> Response:
    builder = handler_input.response_builder
    if supports_apl(handler_input):
        attributes = await load_attributes(handler_input)
        builder.add_directive(
            render_directive("plant_care", plant_care_datasources(attributes.last_watered_date))
        )
    return builder.speak(PLANT_CARE_SPEECH).response


def handle_help(handler_input: HandlerInput, services: SkillServices) -> Response:
    return handler_input.response_builder.speak(HELP_SPEECH).ask(HELP_SPEECH).response


def handle_cancel_and_stop(handler_input: HandlerInput, services: SkillServices) -> Response:
    return handler_input.response_builder.speak(GOODBYE_SPEECH).response


def handle_fallback(handler_input: HandlerInput, services: SkillServices) -> Response:
    return handler_input.response_builder.speak(FALLBACK_SPEECH).ask(FALLBACK_SPEECH).response


def handle_session_ended(handler_input: HandlerInput, services: SkillServices) -> Response:
    request = get_request(handler_input)
    log_json(
        logging.INFO,
        "session_ended",
        reason=getattr(request.reason, "value", None),
        error=_to_dict(request.error),
    )
    return handler_input.response_builder.response


def handle_intent_reflector(handler_input: HandlerInput, services: SkillServices) -> Response:
    """Echo the triggering intent; a debugging aid for the interaction model."""
    intent_name = get_intent_name(handler_input)
    return handler_input.response_builder.speak(f"You just triggered {intent_name}").response


def handle_error(
    handler_input: Optional[HandlerInput],
    error: Optional[BaseException],
    services: SkillServices,
) -> Response:
    log_json(
        logging.ERROR,
        "skill_error",
        request_type=request_type_of(handler_input),
        error=repr(error) if error is not None else "no matching handler",
    )
    # Ignore anything a failing handler staged on its own builder.
    return ResponseFactory().speak(ERROR_SPEECH).ask(ERROR_SPEECH).response


# --- predicates ---

def _any_intent(*names: str) -> Predicate:
    checks = [is_intent_name(name) for name in names]

    def predicate(handler_input: HandlerInput) -> bool:
        return any(check(handler_input) for check in checks)

    return predicate


HANDLER_CHAIN: Tuple[Tuple[str, Predicate, SkillHandler], ...] = (
    ("widget_installed", is_request_type(INSTALL_REQUEST), handle_widget_installed),
    ("widget_removed", is_request_type(REMOVE_REQUEST), handle_widget_removed),
    ("widget_updated", is_request_type(UPDATE_REQUEST), handle_widget_updated),
    ("installation_error", is_request_type(INSTALLATION_ERROR), handle_installation_error),
    ("user_event", is_request_type(USER_EVENT_REQUEST), handle_user_event),
    ("launch", is_request_type(LAUNCH_REQUEST), handle_launch),
    ("plant_care", is_intent_name(PLANT_CARE_INTENT), handle_plant_care),
    ("help", is_intent_name(HELP_INTENT), handle_help),
    ("cancel_and_stop", _any_intent(CANCEL_INTENT, STOP_INTENT), handle_cancel_and_stop),
    ("fallback", is_intent_name(FALLBACK_INTENT), handle_fallback),
    ("session_ended", is_request_type(SESSION_ENDED_REQUEST), handle_session_ended),
    ("intent_reflector", is_request_type(INTENT_REQUEST), handle_intent_reflector),
)


def build_skill_router(services: SkillServices) -> RequestRouter:
    """Bind every handler to the shared services and return the dispatcher."""
    descriptors = [
        HandlerDescriptor(name=name, can_handle=predicate, handle=partial(handler, services=services))
        for name, predicate, handler in HANDLER_CHAIN
    ]
    return RequestRouter(
        descriptors,
        partial(handle_error, services=services),
        persistence_adapter=services.persistence_adapter,
        user_agent=services.user_agent,
    )


__all__ = [
    "ERROR_SPEECH",
    "HANDLER_CHAIN",
    "SkillServices",
    "build_skill_router",
]
