from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class CommandType(str, enum.Enum):
    put_object = "PUT_OBJECT"


class TargetType(str, enum.Enum):
    user = "USER"


class UserAction(str, enum.Enum):
    """First SendEvent argument emitted by the widget and the skill's APL views."""

    open_skill = "openSkill"
    watered_from_widget = "plantWateredWidget"
    watered_from_skill = "plantWateredSkill"


@dataclass(frozen=True)
class AccessToken:
    """Bearer credential returned by the client-credentials grant."""

    access_token: str = field(repr=False)
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    scope: Optional[str] = None

    @classmethod
    def from_response(cls, body: Any) -> "AccessToken":
        if not isinstance(body, dict):
            raise ValueError("token response must be an object")
        access_token = body.get("access_token")
        token_type = body.get("token_type")
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("token response missing access_token")
        if not isinstance(token_type, str) or not token_type:
            raise ValueError("token response missing token_type")
        expires_in = body.get("expires_in")
        return cls(
            access_token=access_token,
            token_type=token_type,
            expires_in=int(expires_in) if isinstance(expires_in, (int, float)) else None,
            scope=body.get("scope") if isinstance(body.get("scope"), str) else None,
        )

    @property
    def authorization(self) -> str:
        return f"{self.token_type} {self.access_token}"


@dataclass(frozen=True)
class PutObjectCommand:
    namespace: str
    key: str
    content: Dict[str, Any]
    type: CommandType = CommandType.put_object

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "namespace": self.namespace,
            "key": self.key,
            "content": dict(self.content),
        }


@dataclass(frozen=True)
class CommandTarget:
    id: str
    type: TargetType = TargetType.user

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "id": self.id}


def commands_payload(commands: List[PutObjectCommand], target: CommandTarget) -> Dict[str, Any]:
    return {"commands": [command.to_dict() for command in commands], "target": target.to_dict()}


__all__ = [
    "AccessToken",
    "CommandTarget",
    "CommandType",
    "PutObjectCommand",
    "TargetType",
    "UserAction",
    "commands_payload",
]
