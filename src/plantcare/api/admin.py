from __future__ import annotations

import time
from typing import Any, Dict, MutableMapping

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from ..config import SkillSettings
from ..router import RequestRouter


def register_admin_routes(
    app,
    *,
    settings: SkillSettings,
    skill_router: RequestRouter,
    metrics: MutableMapping[str, int],
    start_time: float,
) -> None:
    router_api = APIRouter()

    @router_api.get("/health")
    def health():
        metrics["/health"] += 1
        return {"status": "ok", "service": settings.telemetry.service_name}

    @router_api.get("/readyz")
    def readiness():
        metrics["/readyz"] += 1
        checks: Dict[str, Dict[str, Any]] = {
            "handlers": {
                "ready": len(skill_router.handlers) > 0,
                "count": len(skill_router.handlers),
            },
            "datastore_credentials": {
                "ready": bool(settings.datastore.client_id and settings.datastore.client_secret),
            },
            "persistence": {"ready": True, "backend": settings.persistence.backend},
            "request_verification": {
                "ready": True,
                "signature": settings.verify_signature,
                "timestamp": settings.verify_timestamp,
            },
        }
        overall_ready = all(check["ready"] for check in checks.values())
        return {"ready": overall_ready, "checks": checks}

    @router_api.get("/metrics", response_class=PlainTextResponse)
    def metrics_endpoint():
        uptime = time.time() - start_time
        lines = [
            "# HELP plantcare_requests_total Total number of requests by endpoint",
            "# TYPE plantcare_requests_total counter",
        ]
        for key, value in metrics.items():
            lines.append(f'plantcare_requests_total{{endpoint="{key}"}} {value}')
        lines.extend(
            [
                "# HELP plantcare_dispatch Skill dispatch counters by outcome",
                "# TYPE plantcare_dispatch counter",
            ]
        )
        for key, value in skill_router.get_metrics().items():
            lines.append(f'plantcare_dispatch{{metric="{key}"}} {value}')
        lines.extend(
            [
                "# HELP plantcare_uptime_seconds Service uptime in seconds",
                "# TYPE plantcare_uptime_seconds gauge",
                f"plantcare_uptime_seconds {uptime:.3f}",
            ]
        )
        return "\n".join(lines) + "\n"

    @router_api.get("/router/config")
    def get_router_config():
        return {
            "handlers": list(skill_router.handler_names()),
            "metrics": skill_router.get_metrics(),
        }

    app.include_router(router_api)
