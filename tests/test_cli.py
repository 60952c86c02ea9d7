from datetime import datetime, timedelta, timezone
import logging
import os

import pytest

from lockrenewer import cli

from conftest import FakeStorageClient


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    for name in list(os.environ):
        if name.startswith("LOCKRENEW_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("DOTENV_PATH", str(tmp_path / "missing.env"))


@pytest.fixture
def storage(monkeypatch):
    now = datetime.now(timezone.utc)
    fake = FakeStorageClient(
        {
            "a": now - timedelta(hours=1),
            "b": now + timedelta(days=100),
            "c": now + timedelta(days=1),
        },
        page_size=2,
    )
    created = {}

    def fake_create(endpoint, region, access_key=None, secret_key=None, max_pool_connections=50):
        created.update(endpoint=endpoint, region=region, access_key=access_key)
        return object()

    monkeypatch.setattr(cli, "create_s3_client", fake_create)
    monkeypatch.setattr(cli, "S3StorageClient", lambda s3: fake)
    fake.created = created
    return fake


def test_run_renews_due_objects(storage):
    cli.main(
        [
            "--bucket",
            "bkt",
            "--endpoint",
            "s3.example.com",
            "--access-key-id",
            "id",
            "--secret-access-key",
            "secret",
        ]
    )

    assert storage.written_keys == ["a", "c"]
    assert storage.created == {
        "endpoint": "https://s3.example.com",
        "region": "us-east-1",
        "access_key": "id",
    }


def test_dry_run_writes_nothing(storage):
    cli.main(["--bucket", "bkt", "--dry-run"])

    assert storage.puts == []
    assert sorted(storage.gets) == ["a", "b", "c"]


def test_failure_exits_non_zero_and_logs_key(storage, caplog):
    caplog.set_level(logging.INFO)
    storage.fail_get = {"c"}

    with pytest.raises(SystemExit) as exc:
        cli.main(["--bucket", "bkt"])

    assert exc.value.code == 1
    assert "Failed to get retention for c" in caplog.text


def test_listing_failure_exits_non_zero(storage):
    storage.fail_list_after_pages = 0

    with pytest.raises(SystemExit) as exc:
        cli.main(["--bucket", "bkt"])
    assert exc.value.code == 1


def test_config_error_exits_non_zero(storage, capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main([])

    assert exc.value.code == 1
    assert "bucket is required" in capsys.readouterr().out


def test_short_lock_duration_warns(storage, caplog):
    caplog.set_level(logging.INFO)

    cli.main(["--bucket", "bkt", "--lock-for", "1d", "--update-expires-within", "30d"])

    assert "shorter than update_expires_within" in caplog.text


def test_help_extended(capsys):
    cli.main(["--help-extended"])

    assert "Object Lock Renewer" in capsys.readouterr().out
