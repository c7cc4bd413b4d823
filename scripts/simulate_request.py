#!/usr/bin/env python3
"""Dispatch a synthetic skill request through the local router and print the response."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


def _ensure_src_on_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src = repo_root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


def build_request(kind: str, args: argparse.Namespace) -> Dict[str, Any]:
    if kind == "launch":
        return {"type": "LaunchRequest"}
    if kind in ("install", "remove"):
        request_type = "UsagesInstalled" if kind == "install" else "UsagesRemoved"
        return {
            "type": f"Alexa.DataStore.PackageManager.{request_type}",
            "payload": {
                "packageId": "plantCareWidget",
                "packageVersion": "1.0",
                "usages": [{"instanceId": args.instance_id}],
            },
        }
    if kind in ("water-widget", "water-skill"):
        action = "plantWateredWidget" if kind == "water-widget" else "plantWateredSkill"
        return {"type": "Alexa.Presentation.APL.UserEvent", "arguments": [action, args.date]}
    return {"type": "IntentRequest", "intent": {"name": args.intent, "slots": {}}}


def main(argv: Optional[list[str]] = None) -> int:
    _ensure_src_on_path()
    from plantcare import (
        SkillClients,
        SkillServices,
        SkillSettings,
        build_skill_router,
        persistence_adapter_from_settings,
    )
    from plantcare.logging import configure_logging

    parser = argparse.ArgumentParser(description="Plant care skill request simulator (dev).")
    parser.add_argument(
        "kind",
        choices=["launch", "install", "remove", "water-widget", "water-skill", "intent"],
    )
    parser.add_argument("--user-id", default="amzn1.ask.account.local")
    parser.add_argument("--instance-id", default="local-widget-1")
    parser.add_argument("--date", default=date.today().isoformat())
    parser.add_argument("--intent", default="PlantCareIntent")
    parser.add_argument("--apl", action="store_true", help="Advertise APL support")
    args = parser.parse_args(argv)

    settings = SkillSettings.from_env()
    configure_logging("plant-care-skill", settings.log_level)
    router = build_skill_router(
        SkillServices(
            persistence_adapter=persistence_adapter_from_settings(settings.persistence),
            clients=SkillClients.from_settings(settings),
            user_agent=settings.user_agent,
        )
    )

    interfaces = {"Alexa.Presentation.APL": {"runtime": {"maxVersion": "2023.2"}}} if args.apl else {}
    envelope = {
        "version": "1.0",
        "context": {
            "System": {
                "user": {"userId": args.user_id},
                "device": {"deviceId": "local-device", "supportedInterfaces": interfaces},
            }
        },
        "request": {
            "requestId": "local-request",
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            **build_request(args.kind, args),
        },
    }
    response = asyncio.run(router.dispatch(envelope))
    print(json.dumps(response, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
