from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional
import logging

from .utils import utcnow

log = logging.getLogger(__name__)

COMPLIANCE = "COMPLIANCE"
GOVERNANCE = "GOVERNANCE"
RETENTION_MODES = (COMPLIANCE, GOVERNANCE)

DEFAULT_EXPIRY_WINDOW = 30 * 24 * 3600
DEFAULT_LOCK_DURATION = 90 * 24 * 3600


class Outcome(Enum):
    RENEWED = "renewed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RetentionRecord:
    mode: str
    retain_until: datetime


@dataclass(frozen=True)
class RenewalPolicy:
    """How soon before expiry a lock is renewed, and for how long.

    ``expiry_window`` is the lead time before ``retain_until`` at which an
    object becomes due; ``lock_duration`` is how far past the moment of
    renewal the new ``retain_until`` is set.
    """

    expiry_window: timedelta = timedelta(seconds=DEFAULT_EXPIRY_WINDOW)
    lock_duration: timedelta = timedelta(seconds=DEFAULT_LOCK_DURATION)
    mode: str = COMPLIANCE
    dry_run: bool = False


def is_renewal_due(
    retain_until: datetime, expiry_window: timedelta, now: Optional[datetime] = None
) -> bool:
    if now is None:
        now = utcnow()
    return retain_until < now + expiry_window


def renew_object(
    client,
    bucket: str,
    key: str,
    policy: RenewalPolicy,
    clock: Callable[[], datetime] = utcnow,
) -> Outcome:
    """Extend the lock on ``key`` if it expires within the policy window.

    Errors from the storage client are not handled here; a failed read or
    write is fatal for the whole run.
    """
    current = client.get_retention(bucket, key)
    if not is_renewal_due(current.retain_until, policy.expiry_window, clock()):
        log.debug("Lock on %s held until %s, skipping", key, current.retain_until)
        return Outcome.SKIPPED

    retain_until = clock() + policy.lock_duration
    if policy.dry_run:
        log.info("[dry-run] Would renew object lock for %s until %s", key, retain_until)
        return Outcome.RENEWED

    log.info("Renewing object lock for %s until %s", key, retain_until)
    client.put_retention(bucket, key, policy.mode, retain_until)
    return Outcome.RENEWED
