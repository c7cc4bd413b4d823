from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, MutableMapping, Sequence

from ask_sdk_core.exceptions import SerializationException
from ask_sdk_webservice_support.verifier import (
    AbstractVerifier,
    RequestVerifier,
    TimestampVerifier,
    VerificationException,
)
from fastapi import APIRouter, HTTPException, Request

from ..config import SkillSettings
from ..envelope import deserialize_envelope
from ..logging import log_json
from ..router import RequestRouter


def request_verifiers(settings: SkillSettings) -> List[AbstractVerifier]:
    """Signature and timestamp checks for requests arriving over HTTPS."""
    verifiers: List[AbstractVerifier] = []
    if settings.verify_signature:
        verifiers.append(RequestVerifier())
    if settings.verify_timestamp:
        verifiers.append(TimestampVerifier())
    return verifiers


def register_skill_routes(
    app,
    *,
    skill_router: RequestRouter,
    metrics: MutableMapping[str, int],
    verifiers: Sequence[AbstractVerifier] = (),
) -> None:
    api = APIRouter()

    @api.post("/alexa")
    async def skill_request(request: Request) -> Dict[str, Any]:
        """Receive a skill request envelope from the voice platform and answer it."""
        metrics["/alexa"] += 1
        body = await request.body()
        try:
            envelope = json.loads(body)
        except ValueError:
            raise HTTPException(status_code=400, detail="request body is not valid JSON")
        if not isinstance(envelope, dict):
            raise HTTPException(status_code=400, detail="request envelope must be a JSON object")

        if verifiers:
            try:
                request_envelope = deserialize_envelope(envelope)
                for verifier in verifiers:
                    verifier.verify(request.headers, body.decode("utf-8"), request_envelope)
            except (VerificationException, SerializationException) as exc:
                metrics["/alexa:rejected"] += 1
                log_json(logging.WARNING, "skill_request_rejected", reason=str(exc))
                raise HTTPException(status_code=400, detail="request verification failed")

        raw_request = envelope.get("request")
        log_json(
            logging.INFO,
            "skill_request",
            service="plant-care-skill",
            request_type=raw_request.get("type") if isinstance(raw_request, dict) else None,
        )
        return await skill_router.dispatch(envelope)

    app.include_router(api)
