"""
Vault Leases - Time-bounded validity for individual secrets.

A lease is pure data persisted inside the vault record. Nothing runs in the
background: expiry is evaluated whenever the manager is consulted, so a
secret stays on disk past its expiry until the next load, read or cleanup.

:meth:`LeaseManager.is_expired` is the one expiry predicate; the load-time
sweep, reads, listing and statistics all go through it.
"""
import re
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, Field, RootModel

from ..exceptions import ValidationError

logger = logging.getLogger("sentinel.vault")

_DURATION_PATTERN = re.compile(r"^([0-9]+)([A-Za-z]+)$")

_UNIT_SECONDS = {
    "s": 1, "sec": 1, "seconds": 1,
    "m": 60, "min": 60, "minutes": 60,
    "h": 3600, "hour": 3600, "hours": 3600,
    "d": 86400, "day": 86400, "days": 86400,
    "w": 604800, "week": 604800, "weeks": 604800,
}


def utcnow() -> datetime:
    """Current time, timezone-aware UTC."""
    return datetime.now(timezone.utc)


class Lease(BaseModel):
    """Validity window of one secret."""

    created_at: datetime
    expires_at: datetime

    @classmethod
    def for_duration(cls, duration: timedelta, now: Optional[datetime] = None) -> "Lease":
        """Start a lease now; a negative duration yields an expired lease.

        Raises:
            ValidationError: If the expiry falls outside the datetime range.
        """
        now = now or utcnow()
        try:
            expires_at = now + duration
        except OverflowError:
            raise ValidationError("Lease expiry out of range") from None
        return cls(created_at=now, expires_at=expires_at)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) > self.expires_at

    def time_remaining(self, now: Optional[datetime] = None) -> Optional[timedelta]:
        """Remaining validity, or None once the lease has run out."""
        now = now or utcnow()
        if now < self.expires_at:
            return self.expires_at - now
        return None


class LeaseManager(RootModel[dict[str, Lease]]):
    """Mapping of secret name to lease.

    A lease may name a secret that no longer exists; such orphans are kept
    and counted like any other lease.
    """

    root: dict[str, Lease] = Field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.root)

    def __contains__(self, name: object) -> bool:
        return name in self.root

    def add_lease(self, name: str, duration: timedelta, now: Optional[datetime] = None) -> Lease:
        """Insert or replace the lease for ``name``."""
        lease = Lease.for_duration(duration, now)
        self.root[name] = lease
        return lease

    def get_lease(self, name: str) -> Optional[Lease]:
        return self.root.get(name)

    def remove_lease(self, name: str) -> Optional[Lease]:
        return self.root.pop(name, None)

    def is_expired(self, name: str, now: Optional[datetime] = None) -> bool:
        """True when ``name`` has a lease that has run out.

        Secrets without a lease never expire.
        """
        lease = self.root.get(name)
        return lease is not None and lease.is_expired(now)

    def get_expired_secrets(self, now: Optional[datetime] = None) -> list[str]:
        now = now or utcnow()
        return sorted(name for name in self.root if self.is_expired(name, now))

    def cleanup_expired(self, now: Optional[datetime] = None) -> list[str]:
        """Remove expired leases and return their names."""
        expired = self.get_expired_secrets(now)
        for name in expired:
            del self.root[name]
        if expired:
            logger.debug("Removed %d expired lease(s)", len(expired))
        return expired

    def active_count(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        return sum(1 for name in self.root if not self.is_expired(name, now))

    def expired_count(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        return sum(1 for name in self.root if self.is_expired(name, now))

    def list_active(self, now: Optional[datetime] = None) -> list[tuple[str, Lease]]:
        """Non-expired (name, lease) pairs ordered by name."""
        now = now or utcnow()
        return [
            (name, lease)
            for name, lease in sorted(self.root.items())
            if not lease.is_expired(now)
        ]


def parse_duration(text: str) -> timedelta:
    """Parse ``<positive integer><unit>`` into a timedelta.

    Units (case-insensitive): s/sec/seconds, m/min/minutes, h/hour/hours,
    d/day/days, w/week/weeks. Examples: ``"10s"``, ``"1d"``, ``"2Weeks"``.

    Raises:
        ValidationError: On empty input, a missing or unknown unit, or a
            magnitude that is not a positive integer.
    """
    text = (text or "").strip()
    if not text:
        raise ValidationError("Duration cannot be empty")
    match = _DURATION_PATTERN.match(text)
    if match is None:
        if text.isdigit():
            raise ValidationError("Duration must include a unit (s, m, h, d, w)")
        raise ValidationError(
            f"Invalid duration {text!r}: expected <positive integer><unit>, e.g. 10m"
        )
    number, unit = match.groups()
    magnitude = int(number)
    if magnitude <= 0:
        raise ValidationError("Duration must be positive")
    seconds = _UNIT_SECONDS.get(unit.lower())
    if seconds is None:
        raise ValidationError(
            f"Invalid duration unit: {unit}. Use s, m, h, d, or w"
        )
    try:
        duration = timedelta(seconds=magnitude * seconds)
        utcnow() + duration
    except OverflowError:
        raise ValidationError(f"Duration too large: {text}") from None
    return duration
