from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .config import DataStoreSettings, SkillSettings
from .models import AccessToken, CommandTarget, PutObjectCommand, commands_payload

logger = logging.getLogger(__name__)

JsonDict = Dict[str, Any]
HttpResult = Tuple[bool, int, Optional[JsonDict]]


def _json_body(response: httpx.Response) -> Optional[JsonDict]:
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else {"data": body}


@dataclass
class TokenClient:
    """Fetches short-lived DataStore credentials via the client-credentials grant."""

    token_url: str
    client_id: str
    client_secret: str = field(repr=False)
    scope: str = "alexa::datastore"
    timeout_seconds: float = 3.0
    default_headers: Dict[str, str] = field(default_factory=dict)
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)

    async def fetch_access_token(self) -> Optional[AccessToken]:
        """Return a credential, or None when the grant fails for any reason."""
        form = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scope": self.scope,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                headers=self.default_headers,
                transport=self.transport,
            ) as client:
                response = await client.post(self.token_url, data=form)
        except httpx.HTTPError as exc:
            logger.warning("access token request failed: %s", exc)
            return None

        if not response.is_success:
            logger.warning(
                "access token request rejected: status=%s body=%s",
                response.status_code,
                response.text[:200],
            )
            return None
        try:
            return AccessToken.from_response(_json_body(response))
        except ValueError as exc:
            logger.warning("access token response unusable: %s", exc)
            return None


@dataclass
class DataStoreClient:
    """Pushes commands to the device DataStore; failures are returned, never raised."""

    commands_url: str
    timeout_seconds: float = 10.0
    default_headers: Dict[str, str] = field(default_factory=dict)
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)

    async def push_commands(
        self,
        token: Optional[AccessToken],
        commands: List[PutObjectCommand],
        target: CommandTarget,
    ) -> HttpResult:
        if token is None:
            logger.warning("datastore push skipped: no access token")
            return False, 0, None

        headers = {**self.default_headers, "Authorization": token.authorization}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                headers=headers,
                transport=self.transport,
            ) as client:
                response = await client.post(
                    self.commands_url, json=commands_payload(commands, target)
                )
        except httpx.HTTPError as exc:
            logger.warning("datastore push failed: %s", exc)
            return False, 0, None

        body = _json_body(response)
        if not response.is_success:
            logger.warning(
                "datastore push rejected: status=%s body=%s", response.status_code, body
            )
            return False, response.status_code, body
        logger.info("datastore push accepted: status=%s body=%s", response.status_code, body)
        return True, response.status_code, body


@dataclass
class SkillClients:
    tokens: TokenClient
    datastore: DataStoreClient
    settings: DataStoreSettings = field(default_factory=DataStoreSettings)

    @classmethod
    def from_settings(
        cls,
        settings: SkillSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "SkillClients":
        datastore = settings.datastore
        headers: Dict[str, str] = {}
        if settings.user_agent:
            headers["User-Agent"] = settings.user_agent
        return cls(
            tokens=TokenClient(
                token_url=datastore.token_url,
                client_id=datastore.client_id,
                client_secret=datastore.client_secret,
                scope=datastore.scope,
                timeout_seconds=datastore.token_timeout_seconds,
                default_headers=dict(headers),
                transport=transport,
            ),
            datastore=DataStoreClient(
                commands_url=datastore.commands_url,
                timeout_seconds=datastore.push_timeout_seconds,
                default_headers=dict(headers),
                transport=transport,
            ),
            settings=datastore,
        )


__all__ = ["DataStoreClient", "HttpResult", "SkillClients", "TokenClient"]
