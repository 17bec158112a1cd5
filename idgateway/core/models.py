"""Value objects exchanged with Keycloak.

Keycloak speaks camelCase JSON representations; these dataclasses are the
snake_case view the gateway works with. None of them is persisted.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Optional


@dataclass(frozen=True)
class Principal:
    """A user as known to the IdP."""
    id: str
    username: str
    email: Optional[str] = None
    enabled: bool = True
    email_verified: bool = False
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @classmethod
    def from_representation(cls, rep: dict[str, Any]) -> "Principal":
        return cls(
            id=rep["id"],
            username=rep.get("username", ""),
            email=rep.get("email"),
            enabled=bool(rep.get("enabled", False)),
            email_verified=bool(rep.get("emailVerified", False)),
            first_name=rep.get("firstName"),
            last_name=rep.get("lastName"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Credential:
    """Password credential sent once, inside the user creation call."""
    value: str = field(repr=False)
    temporary: bool = False
    type: str = "password"

    def to_representation(self) -> dict[str, Any]:
        return {"type": self.type, "value": self.value, "temporary": self.temporary}


@dataclass(frozen=True)
class Role:
    """Realm- or client-scoped role."""
    id: str
    name: str
    client_role: bool = False
    container_id: Optional[str] = None

    @classmethod
    def from_representation(cls, rep: dict[str, Any]) -> "Role":
        return cls(
            id=rep["id"],
            name=rep["name"],
            client_role=bool(rep.get("clientRole", False)),
            container_id=rep.get("containerId"),
        )

    def to_mapping(self) -> dict[str, str]:
        """Payload accepted by the role-mappings endpoints."""
        return {"id": self.id, "name": self.name}


@dataclass
class TokenResponse:
    """Token endpoint answer, enriched with the principal's realm roles."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    refresh_expires_in: Optional[int] = None
    token_type: str = "Bearer"
    id_token: Optional[str] = None
    scope: Optional[str] = None
    session_state: Optional[str] = None
    roles: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "TokenResponse":
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
            refresh_expires_in=payload.get("refresh_expires_in"),
            token_type=payload.get("token_type") or "Bearer",
            id_token=payload.get("id_token"),
            scope=payload.get("scope"),
            session_state=payload.get("session_state"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}
