from datetime import datetime
from typing import Callable, Optional
import logging

from .errors import ListError
from .fanout import FanOutCoordinator, RunStats
from .retention import RenewalPolicy, renew_object
from .utils import utcnow

log = logging.getLogger(__name__)


def run_renewal(
    client,
    bucket: str,
    policy: RenewalPolicy,
    prefix: Optional[str] = None,
    max_workers: Optional[int] = None,
    abort_grace: float = 0.0,
    clock: Callable[[], datetime] = utcnow,
) -> RunStats:
    """Renew every due object lock in ``bucket``.

    Keys are dispatched as the listing is paged, so renewals start before the
    listing is complete. Returns once every dispatched task has finished.
    Raises the first :class:`~lockrenewer.errors.RenewalError` seen, from
    either the listing or any task.
    """
    coordinator = FanOutCoordinator(
        lambda key: renew_object(client, bucket, key, policy, clock=clock),
        max_workers=max_workers,
        abort_grace=abort_grace,
    )

    where = f"s3://{bucket}/{prefix or ''}"
    log.info("Checking object locks under %s", where)
    try:
        for key in client.list_objects(bucket, prefix=prefix):
            coordinator.dispatch(key)
    except ListError as err:
        coordinator.abort(err)

    log.debug("Listing done, waiting for %d task(s)", coordinator.outstanding)
    coordinator.wait()

    stats = coordinator.stats
    log.debug(
        "Finished %s: %d checked, %d renewed, %d skipped",
        where,
        stats.dispatched,
        stats.renewed,
        stats.skipped,
    )
    return stats
