"""
Session state and the abstract identity provider the form engine talks to.

The concrete provider (login SDK, messaging API) lives outside this project;
anything implementing IdentityProvider can be handed to FormEngine.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Protocol

from errors import NotificationError

GUEST_UID = "guest"


class NotificationOutcome(str, enum.Enum):
    SENT = "sent"
    SKIPPED = "skipped"     # guest, or not running inside the messaging client
    FAILED = "failed"


@dataclass(frozen=True)
class Profile:
    user_id: str
    display_name: str = ""


@dataclass
class Identity:
    is_guest: bool = True
    user_id: str = ""
    display_name: str = ""

    @property
    def linked(self) -> bool:
        return not self.is_guest and bool(self.user_id)


@dataclass
class Session:
    identity: Identity = field(default_factory=Identity)
    line_message_sent: bool = False

    def sign_in(self, profile: Profile) -> None:
        self.identity = Identity(is_guest=False, user_id=profile.user_id,
                                 display_name=profile.display_name)

    def sign_out(self) -> None:
        self.identity = Identity()


class IdentityProvider(Protocol):
    async def init(self, auth_id: str) -> None: ...

    async def is_logged_in(self) -> bool: ...

    async def get_profile(self) -> Profile: ...

    async def login(self, redirect_target: str) -> None: ...

    async def is_in_client(self) -> bool: ...

    async def send_notification(self, text: str) -> None: ...


class GuestIdentityProvider:
    """Provider used when no login integration is configured: everyone is a guest."""

    async def init(self, auth_id: str) -> None:
        return None

    async def is_logged_in(self) -> bool:
        return False

    async def get_profile(self) -> Profile:
        return Profile(user_id="")

    async def login(self, redirect_target: str) -> None:
        return None

    async def is_in_client(self) -> bool:
        return False

    async def send_notification(self, text: str) -> None:
        raise NotificationError("No messaging channel is configured.")
