from fastapi import FastAPI
from fastapi.middleware.trustedhost import TrustedHostMiddleware
import time
import uvicorn
from collections import defaultdict

from plantcare import (
    SkillClients,
    SkillServices,
    SkillSettings,
    build_skill_router,
    instrument_fastapi,
    persistence_adapter_from_settings,
    setup_telemetry,
)
from plantcare.api import register_admin_routes, register_skill_routes, request_verifiers
from plantcare.logging import configure_logging

settings = SkillSettings.from_env()

# Initialize telemetry before the app boots
setup_telemetry(settings.telemetry)

app = FastAPI(
    title="plant-care-skill",
    description="Plant care widget skill backend",
    version=settings.telemetry.service_version,
)

instrument_fastapi(app)

logger = configure_logging("plant-care-skill", settings.log_level)
# Allow FastAPI's TestClient default host to pass TrustedHostMiddleware checks
allowed_hosts = list(settings.allowed_hosts)
if "testserver" not in allowed_hosts:
    allowed_hosts.append("testserver")

app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)

services = SkillServices(
    persistence_adapter=persistence_adapter_from_settings(settings.persistence),
    clients=SkillClients.from_settings(settings),
    user_agent=settings.user_agent,
)
skill_router = build_skill_router(services)
app.state.skill_router = skill_router
logger.info("Skill router ready with handlers: %s", ", ".join(skill_router.handler_names()))

# Simple in-memory metrics
_metrics = defaultdict(int)
_start_time = time.time()

register_skill_routes(
    app,
    skill_router=skill_router,
    metrics=_metrics,
    verifiers=request_verifiers(settings),
)
register_admin_routes(
    app,
    settings=settings,
    skill_router=skill_router,
    metrics=_metrics,
    start_time=_start_time,
)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8080)
