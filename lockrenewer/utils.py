from typing import Any, Optional
from datetime import datetime, timezone
import logging
import os

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"
LOG_DATEFMT = "%H:%M:%S"


def getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(format=LOG_FORMAT, level=level, datefmt=LOG_DATEFMT)
    # botocore is very chatty at debug level
    noisy = logging.DEBUG if verbose else logging.WARNING
    for name in ("botocore", "boto3", "urllib3"):
        logging.getLogger(name).setLevel(noisy)


def parse_interval_to_seconds(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if not isinstance(value, str):
        return None
    s = value.strip().lower()
    if s.isdigit():
        return int(s)
    multipliers = {"s": 1, "m": 60, "h": 3600, "d": 86400}
    if s[-1:] in multipliers and s[:-1].isdigit():
        return int(s[:-1]) * multipliers[s[-1]]
    return None


def normalize_endpoint(endpoint: Optional[str]) -> Optional[str]:
    if not endpoint:
        return None
    endpoint = endpoint.strip()
    if "://" not in endpoint:
        return f"https://{endpoint}"
    return endpoint
