from dataclasses import dataclass
from typing import Callable, Optional
import threading
import logging

from .retention import Outcome

log = logging.getLogger(__name__)


@dataclass
class RunStats:
    dispatched: int = 0
    renewed: int = 0
    skipped: int = 0


class FanOutCoordinator:
    """Runs ``worker(key)`` on its own thread for every dispatched key.

    With ``max_workers=None`` every key starts immediately, so the number of
    threads in flight is bounded only by the size of the listing. Setting
    ``max_workers`` makes ``dispatch`` block until one of that many slots is
    free.

    The first exception raised by any worker is recorded and aborts the run:
    ``dispatch`` and ``wait`` re-raise it. Workers that are still running are
    not interrupted. Workers that have not started yet see the cancel flag and
    do nothing. ``abort_grace`` is how long, in seconds, to wait for running
    workers before re-raising; the default of 0 does not wait at all.
    """

    def __init__(
        self,
        worker: Callable[[str], Outcome],
        max_workers: Optional[int] = None,
        abort_grace: float = 0.0,
    ):
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._worker = worker
        self._abort_grace = abort_grace
        self._slots = threading.BoundedSemaphore(max_workers) if max_workers else None
        self._cond = threading.Condition()
        self._cancelled = threading.Event()
        self._outstanding = 0
        self._failure: Optional[BaseException] = None
        self._stats = RunStats()

    @property
    def outstanding(self) -> int:
        with self._cond:
            return self._outstanding

    @property
    def stats(self) -> RunStats:
        with self._cond:
            return RunStats(
                self._stats.dispatched, self._stats.renewed, self._stats.skipped
            )

    def dispatch(self, key: str) -> None:
        self._raise_if_failed()
        if self._slots is not None:
            while not self._slots.acquire(timeout=0.1):
                self._raise_if_failed()
        thread = threading.Thread(
            target=self._run, args=(key,), name=f"renew:{key}", daemon=True
        )
        with self._cond:
            # a failing task may have freed the slot we just took
            failure = self._failure
            if failure is None:
                self._outstanding += 1
                self._stats.dispatched += 1
        if failure is not None:
            self._release_slot()
            self.abort(failure)
        try:
            thread.start()
        except RuntimeError as err:
            self._release_slot()
            with self._cond:
                self._outstanding -= 1
                self._stats.dispatched -= 1
                self._cond.notify_all()
            log.error("Could not start a renewal thread for %s: %s", key, err)
            self.abort(err)

    def wait(self) -> None:
        with self._cond:
            self._cond.wait_for(
                lambda: self._outstanding == 0 or self._failure is not None
            )
            failure = self._failure
        if failure is not None:
            self.abort(failure)

    def abort(self, error: BaseException) -> None:
        self._cancelled.set()
        with self._cond:
            if self._failure is None:
                self._failure = error
            if self._abort_grace > 0 and self._outstanding:
                log.warning(
                    "Aborting, waiting up to %ss for %d task(s) in flight",
                    self._abort_grace,
                    self._outstanding,
                )
                self._cond.wait_for(
                    lambda: self._outstanding == 0, timeout=self._abort_grace
                )
        raise error

    def _raise_if_failed(self) -> None:
        with self._cond:
            failure = self._failure
        if failure is not None:
            self.abort(failure)

    def _release_slot(self) -> None:
        if self._slots is not None:
            self._slots.release()

    def _run(self, key: str) -> None:
        try:
            if self._cancelled.is_set():
                return
            outcome = self._worker(key)
        except BaseException as err:
            self._cancelled.set()
            with self._cond:
                if self._failure is None:
                    self._failure = err
                else:
                    log.debug("Discarding later failure for %s: %s", key, err)
        else:
            with self._cond:
                if outcome is Outcome.RENEWED:
                    self._stats.renewed += 1
                else:
                    self._stats.skipped += 1
        finally:
            self._release_slot()
            with self._cond:
                self._outstanding -= 1
                self._cond.notify_all()
