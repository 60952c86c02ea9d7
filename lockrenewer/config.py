from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional
from dotenv import load_dotenv
from pathlib import Path
import re
import os

from .errors import ConfigError
from .retention import (
    DEFAULT_EXPIRY_WINDOW,
    DEFAULT_LOCK_DURATION,
    RETENTION_MODES,
    RenewalPolicy,
)
from .utils import getenv, normalize_endpoint, parse_interval_to_seconds

try:
    import tomllib as toml_loader
except ImportError:
    import tomli as toml_loader

ENV_PREFIX = "LOCKRENEW_"
DEFAULT_REGION = "us-east-1"
DEFAULT_MAX_POOL_CONNECTIONS = 50


@dataclass
class Settings:
    bucket: str
    endpoint: Optional[str] = None
    region: str = DEFAULT_REGION
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    prefix: Optional[str] = None
    max_workers: Optional[int] = None
    abort_grace: float = 0.0
    max_pool_connections: int = DEFAULT_MAX_POOL_CONNECTIONS
    policy: RenewalPolicy = field(default_factory=RenewalPolicy)


def _resolve_env_string(value: str) -> str:
    if isinstance(value, str) and re.fullmatch(r"ENV_[A-Z0-9_]+", value):
        var_name = value[4:]
        env_val = os.getenv(var_name)
        if env_val is None:
            raise ConfigError(
                f"Environment variable '{var_name}' not set for placeholder '{value}'"
            )
        return env_val
    return value


def _resolve_env_placeholders(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _resolve_env_placeholders(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_resolve_env_placeholders(v) for v in obj]
    if isinstance(obj, str):
        return _resolve_env_string(obj)
    return obj


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    if not config_path:
        return {}
    cfg_path = Path(config_path)
    if not cfg_path.exists():
        raise ConfigError(f"Config file not found: {cfg_path}")
    try:
        with cfg_path.open("rb") as fp:
            data: Dict[str, Any] = toml_loader.load(fp)
    except (OSError, toml_loader.TOMLDecodeError) as err:
        raise ConfigError(f"Failed to read config TOML: {err}") from err

    default_env = cfg_path.parent / ".env"
    if default_env.exists():
        load_dotenv(dotenv_path=str(default_env), override=False)

    dot_env = data.get("dot_env")
    dot_envs = data.get("dot_envs") or []
    env_paths: List[Path] = []
    if isinstance(dot_env, str) and dot_env:
        env_paths.append(cfg_path.parent / dot_env)
    if isinstance(dot_envs, list):
        for p in dot_envs:
            if isinstance(p, str) and p:
                env_paths.append(cfg_path.parent / p)
    for p in env_paths:
        load_dotenv(dotenv_path=str(p), override=False)

    return _resolve_env_placeholders(data)


def _pick(flag: Any, env_name: str, section: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Flag beats environment, environment beats the TOML file."""
    if flag is not None:
        return flag
    env_val = getenv(ENV_PREFIX + env_name)
    if env_val is not None:
        return env_val
    value = section.get(key)
    if value is not None and value != "":
        return value
    return default


def _duration(value: Any, name: str) -> timedelta:
    seconds = parse_interval_to_seconds(value)
    if seconds is None or seconds < 0:
        raise ConfigError(f"Invalid duration for {name}: {value!r}")
    return timedelta(seconds=seconds)


def _int(value: Any, name: str, minimum: int) -> Optional[int]:
    if value is None:
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid integer for {name}: {value!r}") from None
    if number < minimum:
        raise ConfigError(f"{name} must be at least {minimum}, got {number}")
    return number


def _bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def resolve_settings(cfg: Dict[str, Any], args: Any) -> Settings:
    storage_cfg = cfg.get("storage", {}) or {}
    renewal_cfg = cfg.get("renewal", {}) or {}

    def arg(name: str) -> Any:
        return getattr(args, name, None)

    bucket = _pick(arg("bucket"), "BUCKET", storage_cfg, "bucket")
    if not bucket:
        raise ConfigError("A bucket is required (--bucket, LOCKRENEW_BUCKET or storage.bucket)")

    access_key = _pick(arg("access_key_id"), "ACCESS_KEY_ID", storage_cfg, "access_key_id")
    secret_key = _pick(
        arg("secret_access_key"), "SECRET_ACCESS_KEY", storage_cfg, "secret_access_key"
    )
    if bool(access_key) != bool(secret_key):
        raise ConfigError("Access key id and secret access key must be given together")

    mode = str(_pick(arg("mode"), "MODE", renewal_cfg, "mode", "COMPLIANCE")).upper()
    if mode not in RETENTION_MODES:
        raise ConfigError(f"Unknown retention mode: {mode}")

    expiry_window = _duration(
        _pick(
            arg("update_expires_within"),
            "UPDATE_EXPIRES_WITHIN",
            renewal_cfg,
            "update_expires_within",
            DEFAULT_EXPIRY_WINDOW,
        ),
        "update_expires_within",
    )
    lock_duration = _duration(
        _pick(arg("lock_for"), "LOCK_FOR", renewal_cfg, "lock_for", DEFAULT_LOCK_DURATION),
        "lock_for",
    )

    dry_run = bool(arg("dry_run")) or _bool(renewal_cfg.get("dry_run", False))

    abort_grace = _pick(arg("abort_grace"), "ABORT_GRACE", renewal_cfg, "abort_grace", 0)
    try:
        abort_grace = float(abort_grace)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid abort_grace: {abort_grace!r}") from None

    return Settings(
        bucket=str(bucket),
        endpoint=normalize_endpoint(_pick(arg("endpoint"), "ENDPOINT", storage_cfg, "endpoint")),
        region=str(_pick(arg("region"), "REGION", storage_cfg, "region", DEFAULT_REGION)),
        access_key=access_key or None,
        secret_key=secret_key or None,
        prefix=_pick(arg("prefix"), "PREFIX", renewal_cfg, "prefix") or None,
        max_workers=_int(
            _pick(arg("max_workers"), "MAX_WORKERS", renewal_cfg, "max_workers"),
            "max_workers",
            1,
        ),
        abort_grace=max(0.0, abort_grace),
        max_pool_connections=_int(
            _pick(
                arg("max_pool_connections"),
                "MAX_POOL_CONNECTIONS",
                storage_cfg,
                "max_pool_connections",
                DEFAULT_MAX_POOL_CONNECTIONS,
            ),
            "max_pool_connections",
            1,
        ),
        policy=RenewalPolicy(
            expiry_window=expiry_window,
            lock_duration=lock_duration,
            mode=mode,
            dry_run=dry_run,
        ),
    )
