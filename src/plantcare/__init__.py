"""Plant care widget skill: request routing, widget state and DataStore sync."""

from .attributes import (
    InMemoryPersistenceAdapter,
    JsonFilePersistenceAdapter,
    UserAttributes,
    persistence_adapter_from_settings,
)
from .clients import DataStoreClient, SkillClients, TokenClient
from .config import SkillSettings
from .router import HandlerDescriptor, RequestRouter
from .skills import SkillServices, build_skill_router
from .telemetry import flush_telemetry, instrument_fastapi, setup_telemetry

__all__ = [
    "DataStoreClient",
    "HandlerDescriptor",
    "InMemoryPersistenceAdapter",
    "JsonFilePersistenceAdapter",
    "RequestRouter",
    "SkillClients",
    "SkillServices",
    "SkillSettings",
    "TokenClient",
    "UserAttributes",
    "build_skill_router",
    "flush_telemetry",
    "instrument_fastapi",
    "persistence_adapter_from_settings",
    "setup_telemetry",
]
