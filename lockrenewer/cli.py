import os
import sys
import argparse
import logging
from typing import List, Optional
from dotenv import load_dotenv

from .config import load_config, resolve_settings
from .errors import ConfigError, RenewalError
from .jobs import run_renewal
from .s3 import S3StorageClient, create_s3_client
from .utils import setup_logging

log = logging.getLogger("lockrenewer")


def print_extended_help() -> None:
    help_text = (
        "\n"
        "Object Lock Renewer - Extended Help\n"
        "\n"
        "Renews the object-lock retention of every object in a bucket whose\n"
        "lock expires within --update-expires-within, setting it to now plus\n"
        "--lock-for. Any listing, read or write failure aborts the whole run\n"
        "with exit status 1.\n"
        "\n"
        "Durations accept seconds (2592000) or a suffix: 30s, 15m, 12h, 30d.\n"
        "\n"
        "TOML Configuration:\n"
        "  [storage] endpoint, region, access_key_id, secret_access_key, bucket,\n"
        "            max_pool_connections\n"
        "  [renewal] update_expires_within, lock_for, mode, prefix,\n"
        "            max_workers, abort_grace, dry_run\n"
        "  dot_env = \".env\" | dot_envs = [\"a.env\", \"b.env\"] (optional)\n"
        "\n"
        "Environment Overrides:\n"
        "  LOCKRENEW_<SETTING>, e.g. LOCKRENEW_BUCKET, LOCKRENEW_ENDPOINT,\n"
        "  LOCKRENEW_ACCESS_KEY_ID, LOCKRENEW_SECRET_ACCESS_KEY, LOCKRENEW_LOCK_FOR.\n"
        "  Flags beat environment variables, which beat the TOML file.\n"
        "\n"
        "ENV_* Placeholders:\n"
        "  Any TOML value 'ENV_NAME' is replaced by $NAME from the environment (or .env).\n"
        "\n"
        "Examples:\n"
        "  Renew with defaults:    python3 main.py --bucket backups --endpoint s3.example.com\n"
        "  From config:            python3 main.py -c config.toml\n"
        "  Simulate:               python3 main.py -c config.toml --dry-run --verbose\n"
        "  Bounded concurrency:    python3 main.py -c config.toml --max-workers 64\n"
    )
    print(help_text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Renew S3 object-lock retention for every object in a bucket"
    )
    parser.add_argument("--config", "-c", help="Path to the TOML configuration file")
    parser.add_argument("--endpoint", help="S3 endpoint (host or URL)")
    parser.add_argument("--region", help="Signing region (default: us-east-1)")
    parser.add_argument("--bucket", help="Bucket name")
    parser.add_argument("--prefix", help="Only renew objects under this key prefix")
    parser.add_argument("--access-key-id", help="Access key id")
    parser.add_argument("--secret-access-key", help="Secret access key")
    parser.add_argument(
        "--update-expires-within",
        help="Only update objects whose lock expires within this long (default: 30 days)",
    )
    parser.add_argument(
        "--lock-for", help="How long to renew the object lock for (default: 90 days)"
    )
    parser.add_argument(
        "--mode",
        type=str.upper,
        choices=["COMPLIANCE", "GOVERNANCE"],
        help="Retention mode written on renewal (default: COMPLIANCE)",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        help="Cap on concurrent renewals (default: unbounded, one thread per object)",
    )
    parser.add_argument(
        "--abort-grace",
        type=float,
        help="Seconds to wait for in-flight renewals after a fatal error (default: 0)",
    )
    parser.add_argument(
        "--max-pool-connections", type=int, help="HTTP connection pool size (default: 50)"
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Report renewals without writing them"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument(
        "--help-extended", action="store_true", help="Show extended help and exit"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    dotenv_path = os.getenv("DOTENV_PATH", ".env")
    if os.path.exists(dotenv_path):
        load_dotenv(dotenv_path=dotenv_path)

    args = build_parser().parse_args(argv)

    if args.help_extended:
        print_extended_help()
        return

    setup_logging(args.verbose)

    try:
        settings = resolve_settings(load_config(args.config), args)
    except ConfigError as err:
        print(f"Configuration error: {err}")
        sys.exit(1)

    policy = settings.policy
    if policy.lock_duration < policy.expiry_window:
        log.warning(
            "lock_for (%s) is shorter than update_expires_within (%s); "
            "renewed objects will be due again on the next run",
            policy.lock_duration,
            policy.expiry_window,
        )

    s3 = create_s3_client(
        settings.endpoint,
        settings.region,
        settings.access_key,
        settings.secret_key,
        max_pool_connections=settings.max_pool_connections,
    )

    try:
        run_renewal(
            S3StorageClient(s3),
            settings.bucket,
            policy,
            prefix=settings.prefix,
            max_workers=settings.max_workers,
            abort_grace=settings.abort_grace,
        )
    except RenewalError as err:
        log.error("%s", err)
        sys.exit(1)
