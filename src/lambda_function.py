"""
AWS Lambda entry point for the plant care skill.

Wires the same router the HTTP server uses and dispatches each invocation's
request envelope through it. The Lambda trigger authenticates the caller, so
no signature checks run here.
"""

import asyncio

from plantcare import (
    SkillClients,
    SkillServices,
    SkillSettings,
    build_skill_router,
    flush_telemetry,
    persistence_adapter_from_settings,
    setup_telemetry,
)
from plantcare.logging import configure_logging

settings = SkillSettings.from_env()
tracer_provider = setup_telemetry(settings.telemetry, runtime="lambda")
logger = configure_logging("plant-care-skill", settings.log_level)

skill_router = build_skill_router(
    SkillServices(
        persistence_adapter=persistence_adapter_from_settings(settings.persistence),
        clients=SkillClients.from_settings(settings),
        user_agent=settings.user_agent,
    )
)


def lambda_handler(event, context):
    try:
        return asyncio.run(skill_router.dispatch(event, context))
    finally:
        flush_telemetry(tracer_provider)
