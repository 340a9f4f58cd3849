"""
Domain events for the identity context.

Published on the event bus after the change is saved; listeners in
authentication.infra.events.listeners and other apps react to them.
"""

from dataclasses import dataclass

from infrastructure.events import DomainEvent


@dataclass
class UserRegisteredEvent(DomainEvent):
    event_type: str = "user.registered"

    @classmethod
    def for_user(cls, user, account_type: str) -> "UserRegisteredEvent":
        return cls(
            payload={
                "user_id": str(user.id),
                "email": user.email,
                "first_name": user.first_name,
                "account_type": account_type,
            }
        )


@dataclass
class UserRoleChangedEvent(DomainEvent):
    event_type: str = "user.role_changed"

    @classmethod
    def for_user(cls, user_id, role: str) -> "UserRoleChangedEvent":
        return cls(payload={"user_id": str(user_id), "role": role})


__all__ = ["UserRegisteredEvent", "UserRoleChangedEvent"]
