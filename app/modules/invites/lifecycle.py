"""
Invite state machine.

PENDING -> ACCEPTED | DECLINED | EXPIRED. The three right-hand states are
terminal. EXPIRED is never set by a caller: it is derived from ``expires_at``
the first time a pending invite is read or acted on after that instant, and
the service persists it with a conditional update.
"""
import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from app.core.exceptions import ValidationFailedError, WrongInviteRecipientError

DEFAULT_EXPIRY_DAYS = 7


class InviteStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"


TERMINAL_STATUSES = frozenset({InviteStatus.ACCEPTED, InviteStatus.DECLINED, InviteStatus.EXPIRED})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_invite_token() -> str:
    return secrets.token_hex(32)


def expiration_from(now: datetime, days: int = DEFAULT_EXPIRY_DAYS) -> datetime:
    return now + timedelta(days=days)


def parse_timestamp(value: Any) -> datetime:
    """Timestamps come back from PostgREST as ISO strings; naive ones are UTC"""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_expired(invite: Dict[str, Any], now: datetime) -> bool:
    return parse_timestamp(invite["expires_at"]) <= now


def effective_status(invite: Dict[str, Any], now: datetime) -> InviteStatus:
    """Status a reader should see: a pending invite past its expiry is EXPIRED"""
    status = InviteStatus(invite["status"])
    if status is InviteStatus.PENDING and is_expired(invite, now):
        return InviteStatus.EXPIRED
    return status


def needs_expiry(invite: Dict[str, Any], now: datetime) -> bool:
    """True when the stored status is PENDING but the invite has lapsed"""
    return InviteStatus(invite["status"]) is InviteStatus.PENDING and is_expired(invite, now)


def is_addressed_to(invite: Dict[str, Any], user_id: str, email: Optional[str]) -> bool:
    if invite.get("invitee_id"):
        return invite["invitee_id"] == user_id
    if invite.get("invitee_email"):
        return bool(email) and invite["invitee_email"].lower() == email.lower()
    return False


def check_can_respond(invite: Dict[str, Any], user_id: str, email: Optional[str], now: datetime) -> None:
    """Raise unless ``user_id``/``email`` may accept or decline ``invite`` at ``now``.

    Expiry is checked first, then the stored status, then the recipient.
    """
    status = effective_status(invite, now)
    if status is InviteStatus.EXPIRED:
        raise ValidationFailedError("This invite has expired")
    if status in TERMINAL_STATUSES:
        raise ValidationFailedError("This invite has already been used")
    if not is_addressed_to(invite, user_id, email):
        if invite.get("invitee_id"):
            raise WrongInviteRecipientError("This invite was sent to a different user")
        raise WrongInviteRecipientError(
            "This invite was sent to a different email address. Please sign in with the correct account."
        )
