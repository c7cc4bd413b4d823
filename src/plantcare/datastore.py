from __future__ import annotations

import logging
from typing import List

from .clients import HttpResult, SkillClients
from .config import DataStoreSettings
from .logging import log_json
from .models import CommandTarget, PutObjectCommand


def watered_date_commands(settings: DataStoreSettings, last_watered_date: str) -> List[PutObjectCommand]:
    return [
        PutObjectCommand(
            namespace=settings.namespace,
            key=settings.key,
            content={"lastWateredDate": last_watered_date},
        )
    ]


def user_target(user_id: str) -> CommandTarget:
    """Target every device registered to the user."""
    return CommandTarget(id=user_id)


async def sync_watered_date(clients: SkillClients, user_id: str, last_watered_date: str) -> HttpResult:
    """Push the watered date to all of the user's widgets.

    Best effort: the token fetch and the push run once each, in order, and any
    failure comes back as ``ok=False`` for the caller to log.
    """
    commands = watered_date_commands(clients.settings, last_watered_date)
    token = await clients.tokens.fetch_access_token()
    result = await clients.datastore.push_commands(token, commands, user_target(user_id))
    ok, status, _ = result
    if not ok:
        log_json(
            logging.WARNING,
            "datastore_sync_failed",
            user_id=user_id,
            status=status,
            token_obtained=token is not None,
        )
    return result


__all__ = ["sync_watered_date", "user_target", "watered_date_commands"]
