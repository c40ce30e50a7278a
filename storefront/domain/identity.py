# storefront/domain/identity.py
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    user_id: str


@dataclass(frozen=True, slots=True)
class Guest:
    session_token: str
    expires_at: datetime | None = None


# None oznacza "nikt jeszcze" - resolver wtedy wystawia nowy token goscia
Identity = AuthenticatedUser | Guest | None


def issue_guest_token() -> str:
    return secrets.token_urlsafe(32)
