from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set
import threading

import pytest

from lockrenewer.errors import ListError, RetrievalError, UpdateError
from lockrenewer.retention import COMPLIANCE, RetentionRecord

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeStorageClient:
    """In-memory bucket with paginated listing and injectable failures."""

    def __init__(
        self,
        retention: Dict[str, datetime],
        page_size: int = 1000,
        fail_get: Optional[Set[str]] = None,
        fail_put: Optional[Set[str]] = None,
        fail_list_after_pages: Optional[int] = None,
    ):
        self.retention = dict(retention)
        self.page_size = page_size
        self.fail_get = fail_get or set()
        self.fail_put = fail_put or set()
        self.fail_list_after_pages = fail_list_after_pages
        self.pages: List[List[str]] = []
        self.gets: List[str] = []
        self.puts: List[tuple] = []
        self._lock = threading.Lock()

    def list_objects(self, bucket, prefix=None):
        keys = [k for k in self.retention if not prefix or k.startswith(prefix)]
        for i in range(0, len(keys), self.page_size):
            if self.fail_list_after_pages is not None and len(self.pages) >= self.fail_list_after_pages:
                raise ListError(bucket, "listing broke")
            page = keys[i : i + self.page_size]
            self.pages.append(page)
            yield from page

    def get_retention(self, bucket, key):
        with self._lock:
            self.gets.append(key)
        if key in self.fail_get:
            raise RetrievalError(bucket, key, "NoSuchObjectLockConfiguration")
        return RetentionRecord(COMPLIANCE, self.retention[key])

    def put_retention(self, bucket, key, mode, retain_until):
        if key in self.fail_put:
            raise UpdateError(bucket, key, "AccessDenied")
        with self._lock:
            self.puts.append((key, mode, retain_until))
            self.retention[key] = retain_until

    @property
    def written_keys(self):
        return sorted(k for k, _, _ in self.puts)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def make_client():
    return FakeStorageClient


def days(n: float) -> timedelta:
    return timedelta(days=n)
