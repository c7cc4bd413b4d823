from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ask_sdk_core.attributes_manager import AbstractPersistenceAdapter
from ask_sdk_core.exceptions import PersistenceException
from ask_sdk_core.handler_input import HandlerInput
from ask_sdk_model import RequestEnvelope

from .config import PersistenceSettings

logger = logging.getLogger(__name__)

JsonDict = Dict[str, Any]
PartitionKeygen = Callable[[RequestEnvelope], str]


@dataclass
class UserAttributes:
    """Durable per-user state: last watered date and installed widget instances."""

    last_watered_date: str = ""
    installed_instance_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_record(cls, record: Any) -> "UserAttributes":
        """Normalise a stored record; anything malformed reads as its empty default."""
        if not isinstance(record, dict):
            return cls()
        date = record.get("lastWateredDate")
        raw_ids = record.get("installedInstanceIds")
        instance_ids: List[str] = []
        if isinstance(raw_ids, list):
            for instance_id in raw_ids:
                if isinstance(instance_id, str) and instance_id not in instance_ids:
                    instance_ids.append(instance_id)
        return cls(
            last_watered_date=date if isinstance(date, str) else "",
            installed_instance_ids=instance_ids,
        )

    def to_record(self) -> JsonDict:
        return {
            "lastWateredDate": self.last_watered_date,
            "installedInstanceIds": list(self.installed_instance_ids),
        }

    def add_instance(self, instance_id: str) -> bool:
        if instance_id in self.installed_instance_ids:
            return False
        self.installed_instance_ids.append(instance_id)
        return True

    def remove_instance(self, instance_id: str) -> bool:
        if instance_id not in self.installed_instance_ids:
            return False
        self.installed_instance_ids = [i for i in self.installed_instance_ids if i != instance_id]
        return True


def user_id_keygen(request_envelope: RequestEnvelope) -> str:
    try:
        return request_envelope.context.system.user.user_id
    except AttributeError as exc:
        raise PersistenceException("Couldn't retrieve user id from request envelope") from exc


class InMemoryPersistenceAdapter(AbstractPersistenceAdapter):
    """Process-local records keyed by user id; state is lost on restart."""

    def __init__(
        self,
        records: Optional[Dict[str, JsonDict]] = None,
        partition_keygen: PartitionKeygen = user_id_keygen,
    ) -> None:
        self.records: Dict[str, JsonDict] = copy.deepcopy(records or {})
        self.partition_keygen = partition_keygen
        self._lock = threading.Lock()

    def get_attributes(self, request_envelope: RequestEnvelope) -> JsonDict:
        key = self.partition_keygen(request_envelope)
        with self._lock:
            return copy.deepcopy(self.records.get(key, {}))

    def save_attributes(self, request_envelope: RequestEnvelope, attributes: JsonDict) -> None:
        key = self.partition_keygen(request_envelope)
        with self._lock:
            self.records[key] = copy.deepcopy(attributes)

    def delete_attributes(self, request_envelope: RequestEnvelope) -> None:
        key = self.partition_keygen(request_envelope)
        with self._lock:
            self.records.pop(key, None)


class JsonFilePersistenceAdapter(AbstractPersistenceAdapter):
    """Single JSON document mapping user id to record; meant for local runs.

    Every save rewrites the whole document, so the read-modify-write runs under
    one lock and lands through a uniquely named temp file.
    """

    def __init__(self, path: Path, partition_keygen: PartitionKeygen = user_id_keygen) -> None:
        self.path = Path(path)
        self.partition_keygen = partition_keygen
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, JsonDict]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, JsonDict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self.path.parent,
            prefix=f"{self.path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            json.dump(data, tmp, ensure_ascii=False, indent=2)
        os.replace(tmp.name, self.path)

    def get_attributes(self, request_envelope: RequestEnvelope) -> JsonDict:
        key = self.partition_keygen(request_envelope)
        with self._lock:
            return self._read_all().get(key, {})

    def save_attributes(self, request_envelope: RequestEnvelope, attributes: JsonDict) -> None:
        key = self.partition_keygen(request_envelope)
        with self._lock:
            data = self._read_all()
            data[key] = attributes
            self._write_all(data)

    def delete_attributes(self, request_envelope: RequestEnvelope) -> None:
        key = self.partition_keygen(request_envelope)
        with self._lock:
            data = self._read_all()
            if data.pop(key, None) is not None:
                self._write_all(data)


async def load_attributes(handler_input: HandlerInput) -> UserAttributes:
    """Read the requesting user's record off the event loop."""
    manager = handler_input.attributes_manager
    record = await asyncio.to_thread(lambda: manager.persistent_attributes)
    return UserAttributes.from_record(record)


async def persist_attributes(handler_input: HandlerInput, attributes: UserAttributes) -> None:
    """Stage the record on the attributes manager, then write it.

    Writes are unconditional, so two concurrent updates for the same user
    resolve last-write-wins.
    """
    manager = handler_input.attributes_manager
    manager.persistent_attributes = attributes.to_record()
    await asyncio.to_thread(manager.save_persistent_attributes)


def persistence_adapter_from_settings(settings: PersistenceSettings) -> AbstractPersistenceAdapter:
    if settings.backend == "dynamodb":
        if not settings.table_name:
            raise ValueError("dynamodb attribute backend requires DYNAMODB_PERSISTENCE_TABLE_NAME")
        import boto3
        from ask_sdk_dynamodb.adapter import DynamoDbAdapter

        logger.info("Using DynamoDB persistence adapter (table=%s)", settings.table_name)
        return DynamoDbAdapter(
            table_name=settings.table_name,
            partition_key_name="id",
            attribute_name="attributes",
            create_table=False,
            dynamodb_resource=boto3.resource("dynamodb", region_name=settings.region),
        )
    if settings.backend == "json":
        logger.info("Using JSON file persistence adapter (%s)", settings.file_path)
        return JsonFilePersistenceAdapter(Path(settings.file_path))
    if settings.backend == "memory":
        logger.warning("Using in-memory persistence adapter; state is lost on restart")
        return InMemoryPersistenceAdapter()
    raise ValueError(f"Unknown attribute backend: {settings.backend}")


__all__ = [
    "InMemoryPersistenceAdapter",
    "JsonFilePersistenceAdapter",
    "UserAttributes",
    "load_attributes",
    "persist_attributes",
    "persistence_adapter_from_settings",
    "user_id_keygen",
]
