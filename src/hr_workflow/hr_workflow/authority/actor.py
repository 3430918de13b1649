from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..core.enums import Role
from .resolver import coerce_roles


@dataclass(frozen=True)
class ActorContext:
    """Who is acting. Passed explicitly into every workflow call."""

    user_id: int
    roles: tuple[Role, ...] = ()

    @classmethod
    def of(cls, user_id: int, *roles) -> "ActorContext":
        return cls(user_id=int(user_id), roles=tuple(sorted(coerce_roles(roles), key=lambda r: r.value)))

    @classmethod
    def from_session(cls, session: Mapping[str, Any]) -> Optional["ActorContext"]:
        """Build the actor from the login session.

        Returns None when nobody is logged in or the stored user id is not an integer.
        The session carries either a "roles" list or a single "role".
        """

        try:
            user_id = int(session.get("user_id"))
        except (TypeError, ValueError):
            return None
        raw_roles = session.get("roles")
        if raw_roles is None:
            raw_roles = [session.get("role")] if session.get("role") else []
        elif isinstance(raw_roles, str):
            raw_roles = [r for r in raw_roles.split(",") if r.strip()]
        return cls.of(user_id, *raw_roles)
