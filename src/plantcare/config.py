"""Typed configuration for the plant care skill backend."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional


def _split_csv(raw: str) -> List[str]:
    return [entry.strip() for entry in raw.split(",") if entry.strip()]


def _as_float(value: str | None, default: float) -> float:
    if value is None or not value.strip():
        return default
    return float(value)


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


@dataclass(frozen=True)
class DataStoreSettings:
    """Credentials and endpoints for pushing widget data to devices."""

    client_id: str = ""
    client_secret: str = field(default="", repr=False)
    token_url: str = "https://api.amazon.com/auth/o2/token"
    commands_url: str = "https://api.amazonalexa.com/v1/datastore/commands"
    scope: str = "alexa::datastore"
    namespace: str = "plantCareReminder"
    key: str = "plantData"
    token_timeout_seconds: float = 3.0
    push_timeout_seconds: float = 10.0


@dataclass(frozen=True)
class PersistenceSettings:
    backend: str = "memory"
    table_name: str = ""
    region: Optional[str] = None
    file_path: str = "attributes.json"


@dataclass(frozen=True)
class TelemetrySettings:
    exporter_endpoint: str = ""
    service_name: str = "plant-care-skill"
    service_version: str = "1.2.0"


@dataclass(frozen=True)
class SkillSettings:
    """Typed configuration surface for the skill service."""

    allowed_hosts: List[str] = field(
        default_factory=lambda: ["localhost", "127.0.0.1", "plantcare"]
    )
    user_agent: str = "sample/widget/v1.2"
    log_level: str = "INFO"
    verify_signature: bool = True
    verify_timestamp: bool = True
    datastore: DataStoreSettings = field(default_factory=DataStoreSettings)
    persistence: PersistenceSettings = field(default_factory=PersistenceSettings)
    telemetry: TelemetrySettings = field(default_factory=TelemetrySettings)

    @classmethod
    def from_env(cls) -> "SkillSettings":
        """Create settings instance by reading environment variables once."""
        allowed_hosts = _split_csv(
            os.getenv("PLANTCARE_ALLOWED_HOSTS", "localhost,127.0.0.1,plantcare")
        )

        datastore = DataStoreSettings(
            client_id=os.getenv("ALEXA_CLIENT_ID", ""),
            client_secret=os.getenv("ALEXA_CLIENT_SECRET", ""),
            token_url=os.getenv("PLANTCARE_TOKEN_URL", "https://api.amazon.com/auth/o2/token"),
            commands_url=os.getenv(
                "PLANTCARE_DATASTORE_URL", "https://api.amazonalexa.com/v1/datastore/commands"
            ),
            scope=os.getenv("PLANTCARE_DATASTORE_SCOPE", "alexa::datastore"),
            namespace=os.getenv("PLANTCARE_DATASTORE_NAMESPACE", "plantCareReminder"),
            key=os.getenv("PLANTCARE_DATASTORE_KEY", "plantData"),
            token_timeout_seconds=_as_float(os.getenv("PLANTCARE_TOKEN_TIMEOUT"), 3.0),
            push_timeout_seconds=_as_float(os.getenv("PLANTCARE_DATASTORE_TIMEOUT"), 10.0),
        )

        table_name = os.getenv("DYNAMODB_PERSISTENCE_TABLE_NAME", "")
        default_backend = "dynamodb" if table_name else "memory"
        persistence = PersistenceSettings(
            backend=os.getenv("PLANTCARE_ATTRIBUTE_BACKEND", default_backend).lower(),
            table_name=table_name,
            region=os.getenv("DYNAMODB_PERSISTENCE_REGION") or None,
            file_path=os.getenv("PLANTCARE_ATTRIBUTE_FILE", "attributes.json"),
        )

        telemetry = TelemetrySettings(
            exporter_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", ""),
            service_name=os.getenv("OTEL_SERVICE_NAME", "plant-care-skill"),
            service_version=os.getenv("OTEL_SERVICE_VERSION", "1.2.0"),
        )

        return cls(
            allowed_hosts=allowed_hosts,
            user_agent=os.getenv("PLANTCARE_USER_AGENT", "sample/widget/v1.2"),
            log_level=os.getenv("PLANTCARE_LOG_LEVEL", "INFO").upper(),
            verify_signature=_as_bool(os.getenv("PLANTCARE_VERIFY_SIGNATURE"), True),
            verify_timestamp=_as_bool(os.getenv("PLANTCARE_VERIFY_TIMESTAMP"), True),
            datastore=datastore,
            persistence=persistence,
            telemetry=telemetry,
        )


__all__ = [
    "DataStoreSettings",
    "PersistenceSettings",
    "SkillSettings",
    "TelemetrySettings",
]
