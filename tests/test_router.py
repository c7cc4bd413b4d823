"""
pytest tests for the request router
"""

import logging

import pytest
from ask_sdk_core.response_helper import ResponseFactory
from ask_sdk_core.utils import is_request_type

from conftest import make_envelope, speech_text
from plantcare.attributes import InMemoryPersistenceAdapter
from plantcare.router import HandlerDescriptor, RequestRouter


def error_response(handler_input, error):
    reason = repr(error) if error else "no match"
    return ResponseFactory().speak(f"error {reason}").response


def spoken(text):
    return ResponseFactory().speak(text).response


class TestRequestRouter:
    """Dispatch semantics: order, fallthrough and error containment"""

    @pytest.fixture
    def calls(self):
        return []

    @pytest.fixture
    def router(self, calls):
        async def launch(handler_input):
            calls.append("launch")
            return spoken("launch")

        def any_intent(handler_input):
            calls.append("any_intent")
            return spoken("any_intent")

        def help_intent(handler_input):
            calls.append("help")
            return spoken("help")

        def broken(handler_input):
            raise RuntimeError("boom")

        return RequestRouter(
            [
                HandlerDescriptor("launch", is_request_type("LaunchRequest"), launch),
                HandlerDescriptor("any_intent", is_request_type("IntentRequest"), any_intent),
                HandlerDescriptor("help", is_request_type("IntentRequest"), help_intent),
                HandlerDescriptor("broken", is_request_type("SessionEndedRequest"), broken),
            ],
            error_response,
            user_agent="router/test",
        )

    @pytest.mark.asyncio
    async def test_awaits_async_handlers(self, router):
        response = await router.dispatch(make_envelope({"type": "LaunchRequest"}))
        assert speech_text(response) == "launch"
        assert response["version"] == "1.0"
        assert response["userAgent"] == "router/test"

    @pytest.mark.asyncio
    async def test_first_match_wins(self, router, calls):
        response = await router.dispatch(
            make_envelope({"type": "IntentRequest", "intent": {"name": "AMAZON.HelpIntent"}})
        )
        assert speech_text(response) == "any_intent"
        assert calls == ["any_intent"]

    @pytest.mark.asyncio
    async def test_no_match_uses_error_handler(self, router):
        response = await router.dispatch(make_envelope({"type": "CanFulfillIntentRequest"}))
        assert speech_text(response) == "error no match"
        assert router.get_metrics()["dispatch_no_match"] == 1

    @pytest.mark.asyncio
    async def test_handler_exception_is_contained(self, router):
        response = await router.dispatch(
            make_envelope({"type": "SessionEndedRequest", "reason": "USER_INITIATED"})
        )
        assert "boom" in speech_text(response)
        assert router.get_metrics()["dispatch_errors"] == 1

    @pytest.mark.asyncio
    async def test_undecodable_request_type_is_contained(self, router, calls):
        response = await router.dispatch(make_envelope({"type": "Vendor.Unheard.Of"}))
        assert speech_text(response).startswith("error")
        assert calls == []

    @pytest.mark.asyncio
    async def test_predicate_exception_is_contained(self):
        def exploding(handler_input):
            raise KeyError("request")

        router = RequestRouter(
            [HandlerDescriptor("x", exploding, lambda handler_input: spoken("x"))], error_response
        )
        response = await router.dispatch(make_envelope({"type": "LaunchRequest"}))
        assert "KeyError" in speech_text(response)

    @pytest.mark.asyncio
    async def test_envelope_without_request_reaches_error_handler(self, router):
        response = await router.dispatch({})
        assert speech_text(response) == "error no match"

    @pytest.mark.asyncio
    async def test_non_dict_envelope_reaches_error_handler(self, router):
        response = await router.dispatch(["not", "an", "envelope"])
        assert speech_text(response) == "error no match"

    @pytest.mark.asyncio
    async def test_handlers_share_the_persistence_adapter(self):
        adapter = InMemoryPersistenceAdapter({"U1": {"lastWateredDate": "2024-05-01"}})
        seen = []

        def remember(handler_input):
            seen.append(handler_input.attributes_manager.persistent_attributes)
            return spoken("ok")

        router = RequestRouter(
            [HandlerDescriptor("launch", is_request_type("LaunchRequest"), remember)],
            error_response,
            persistence_adapter=adapter,
        )
        await router.dispatch(make_envelope({"type": "LaunchRequest"}))
        assert seen == [{"lastWateredDate": "2024-05-01"}]

    @pytest.mark.asyncio
    async def test_metrics_track_handlers(self, router):
        await router.dispatch(make_envelope({"type": "LaunchRequest"}))
        intent = make_envelope({"type": "IntentRequest", "intent": {"name": "AMAZON.HelpIntent"}})
        await router.dispatch(intent)
        await router.dispatch(intent)

        metrics = router.get_metrics()
        assert metrics["dispatch_requests"] == 3
        assert metrics["dispatch_launch"] == 1
        assert metrics["dispatch_any_intent"] == 2
        assert "dispatch_help" not in metrics
        assert metrics["dispatch_duration_ms"] >= 0

    @pytest.mark.asyncio
    async def test_logs_incoming_envelope_verbatim(self, router, caplog):
        caplog.set_level(logging.INFO, logger="plantcare.router")
        envelope = make_envelope({"type": "LaunchRequest"})
        envelope["request"]["requestId"] = "req-42"
        await router.dispatch(envelope)
        assert any(
            "INCOMING SKILL REQUEST" in record.getMessage() and "req-42" in record.getMessage()
            for record in caplog.records
        )
        incoming = next(r for r in caplog.records if "INCOMING SKILL REQUEST" in r.getMessage())
        assert incoming.msg == "=== INCOMING SKILL REQUEST: %s"
        assert "req-42" in incoming.args[0]

    def test_chain_is_immutable(self, router):
        assert isinstance(router.handlers, tuple)
        assert router.handler_names() == ("launch", "any_intent", "help", "broken")
        with pytest.raises(AttributeError):
            router.handlers[0].name = "renamed"
