"""
Request router for the plant care skill.

Holds an ordered, immutable chain of handler descriptors. Each inbound request
envelope is decoded into a ``HandlerInput`` and goes to the first descriptor
whose predicate matches; when nothing matches, or decoding or the chosen
handler raises, the error handler answers instead.
"""

from __future__ import annotations

import inspect
import json
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple, Union

from ask_sdk_core.attributes_manager import AbstractPersistenceAdapter
from ask_sdk_core.handler_input import HandlerInput
from ask_sdk_model import Response
from opentelemetry import trace

from .envelope import build_handler_input, deserialize_envelope, request_type_of
from .responses import serialize_response

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

JsonDict = Dict[str, Any]
Predicate = Callable[[HandlerInput], bool]
Handler = Callable[[HandlerInput], Union[Response, Awaitable[Response]]]
ErrorHandler = Callable[[Optional[HandlerInput], Optional[BaseException]], Response]


@dataclass(frozen=True)
class HandlerDescriptor:
    """Pairs a request predicate with the handler that serves matching requests."""

    name: str
    can_handle: Predicate
    handle: Handler


async def _resolve(result: Union[Response, Awaitable[Response]]) -> Response:
    if inspect.isawaitable(result):
        return await result
    return result


class RequestRouter:
    """First-match dispatcher over a fixed handler chain"""

    def __init__(
        self,
        handlers: Iterable[HandlerDescriptor],
        error_handler: ErrorHandler,
        *,
        persistence_adapter: Optional[AbstractPersistenceAdapter] = None,
        user_agent: Optional[str] = None,
    ):
        self.handlers: Tuple[HandlerDescriptor, ...] = tuple(handlers)
        self.error_handler = error_handler
        self.persistence_adapter = persistence_adapter
        self.user_agent = user_agent
        self.metrics = defaultdict(int)
        self.logger = logging.getLogger(__name__)

    def select(self, handler_input: HandlerInput) -> Optional[HandlerDescriptor]:
        """Return the first descriptor whose predicate accepts the request."""
        if handler_input.request_envelope.request is None:
            return None
        for descriptor in self.handlers:
            if descriptor.can_handle(handler_input):
                return descriptor
        return None

    async def dispatch(self, envelope: JsonDict, context: Any = None) -> JsonDict:
        """Route one request envelope and return exactly one response envelope."""
        start_time = time.time()
        self.logger.info("=== INCOMING SKILL REQUEST: %s", json.dumps(envelope, default=str))
        self.metrics["dispatch_requests"] += 1
        if not isinstance(envelope, dict):
            envelope = {}
        handler_input: Optional[HandlerInput] = None
        request_type = "unknown"

        with tracer.start_as_current_span("skill.dispatch") as span:
            try:
                handler_input = build_handler_input(
                    deserialize_envelope(envelope), self.persistence_adapter, context
                )
                request_type = request_type_of(handler_input) or "unknown"
                span.set_attribute("skill.request_type", request_type)

                descriptor = self.select(handler_input)
                if descriptor is None:
                    self.metrics["dispatch_no_match"] += 1
                    self.logger.warning("No handler matched request type %s", request_type)
                    span.set_attribute("skill.handler", "error")
                    response = self.error_handler(handler_input, None)
                else:
                    span.set_attribute("skill.handler", descriptor.name)
                    self.metrics[f"dispatch_{descriptor.name}"] += 1
                    response = await _resolve(descriptor.handle(handler_input))

            except Exception as exc:
                self.metrics["dispatch_errors"] += 1
                self.logger.exception("Error handling request type %s: %s", request_type, exc)
                span.record_exception(exc)
                response = self.error_handler(handler_input, exc)
            finally:
                self.metrics["dispatch_duration_ms"] += (time.time() - start_time) * 1000

        body = serialize_response(response, user_agent=self.user_agent)
        self.logger.debug("Response for %s: %s", request_type, json.dumps(body, default=str))
        return body

    def get_metrics(self) -> Dict[str, Any]:
        """Get dispatch metrics"""
        return dict(self.metrics)

    def handler_names(self) -> Tuple[str, ...]:
        return tuple(descriptor.name for descriptor in self.handlers)


__all__ = ["HandlerDescriptor", "RequestRouter"]
