"""Tests for bulk_uploader CLI helpers."""
import logging
import os

import pytest

import bulk_uploader.orchestrator as orchestrator
from bulk_uploader.cli import (
    EXIT_CRITICAL,
    EXIT_FAILURES,
    EXIT_OK,
    CLIError,
    _decode_line_sep,
    _exit_code,
    _load_env_file,
    _normalize_folder,
    _parse_params,
    _read_credentials,
    _setup_logging,
    run_cli,
)
from bulk_uploader.models import BatchResult

from conftest import FakeUploadAPI, server_error


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.disable(logging.NOTSET)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)


@pytest.fixture
def credentials(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CLOUDINARY_API_KEY", "key")
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "secret")
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")


@pytest.fixture
def fake_api(monkeypatch):
    """Route the CLI's BulkUploader through an in-memory API."""
    api = FakeUploadAPI()

    class PatchedUploader(orchestrator.BulkUploader):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, api_client=api, **kwargs)

    monkeypatch.setattr(orchestrator, "BulkUploader", PatchedUploader)
    return api


def test_normalize_folder():
    assert _normalize_folder(None) is None
    assert _normalize_folder("") is None
    assert _normalize_folder(" / ") is None
    assert _normalize_folder("/products/") == "products"
    assert _normalize_folder("shop/2026") == "shop/2026"


def test_load_env_file(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "# credentials",
                "CLOUDINARY_API_KEY=123456",
                "CLOUDINARY_API_SECRET='s3cr3t'",
                "export CLOUDINARY_CLOUD_NAME=demo",
            ]
        ),
        encoding="utf-8",
    )

    for name in ("CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET", "CLOUDINARY_CLOUD_NAME"):
        monkeypatch.delenv(name, raising=False)

    _load_env_file(env_path)

    assert os.environ["CLOUDINARY_API_KEY"] == "123456"
    assert os.environ["CLOUDINARY_API_SECRET"] == "s3cr3t"
    assert os.environ["CLOUDINARY_CLOUD_NAME"] == "demo"


def test_load_env_file_keeps_existing_values(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text("CLOUDINARY_CLOUD_NAME=from-file\n", encoding="utf-8")
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "from-shell")

    _load_env_file(env_path)

    assert os.environ["CLOUDINARY_CLOUD_NAME"] == "from-shell"


def test_load_env_file_missing(tmp_path):
    with pytest.raises(CLIError):
        _load_env_file(tmp_path / "missing.env")


def test_read_credentials_reports_missing(monkeypatch):
    monkeypatch.setenv("CLOUDINARY_API_KEY", "key")
    monkeypatch.delenv("CLOUDINARY_API_SECRET", raising=False)
    monkeypatch.delenv("CLOUDINARY_CLOUD_NAME", raising=False)

    with pytest.raises(CLIError, match="CLOUDINARY_API_SECRET, CLOUDINARY_CLOUD_NAME"):
        _read_credentials()


def test_parse_params():
    assert _parse_params(None) == {}
    assert _parse_params(["tags=a,b", "context='alt=cat'"]) == {"tags": "a,b", "context": "alt=cat"}
    with pytest.raises(CLIError):
        _parse_params(["novalue"])
    with pytest.raises(CLIError):
        _parse_params(["=value"])


def test_decode_line_sep():
    assert _decode_line_sep(None) is None
    assert _decode_line_sep("\\n") == "\n"
    assert _decode_line_sep(";") == ";"


def test_exit_code():
    assert _exit_code(BatchResult(uploaded=["a"])) == EXIT_OK
    assert _exit_code(BatchResult(failed={"a": "boom"})) == EXIT_FAILURES
    assert _exit_code(BatchResult(invalid=["a"])) == EXIT_FAILURES
    assert _exit_code(BatchResult(failed={"a": "boom"}, cancelled=True)) == EXIT_CRITICAL


def test_setup_logging_defaults_to_silent(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    mode = _setup_logging(debug=False, silent=False, log_level=None)
    assert mode == "silent"
    assert logging.getLogger().isEnabledFor(logging.ERROR) is False


def test_setup_logging_debug_mode():
    mode = _setup_logging(debug=True, silent=False, log_level=None)
    assert mode == "DEBUG"
    assert logging.getLogger().isEnabledFor(logging.DEBUG) is True


def test_setup_logging_explicit_level():
    mode = _setup_logging(debug=False, silent=False, log_level="warning")
    assert mode == "WARNING"
    assert logging.getLogger().isEnabledFor(logging.INFO) is False


def test_run_cli_without_source_prints_help(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert run_cli([]) == EXIT_OK
    assert "usage: bulk-up" in capsys.readouterr().out


def test_run_cli_missing_credentials(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    for name in ("CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET", "CLOUDINARY_CLOUD_NAME"):
        monkeypatch.delenv(name, raising=False)

    assert run_cli([str(tmp_path)]) == EXIT_FAILURES
    assert "missing environment variable" in capsys.readouterr().err


def test_run_cli_source_must_be_directory(credentials, tmp_path, capsys):
    assert run_cli([str(tmp_path / "nope")]) == EXIT_FAILURES
    assert "not a directory" in capsys.readouterr().err


def test_run_cli_ping(credentials, fake_api):
    assert run_cli(["--ping"]) == EXIT_OK


def test_run_cli_uploads_directory(credentials, fake_api, image_dir):
    image_dir(3)

    code = run_cli([str(image_dir.path), "--folder", "/shop/", "-p", "tags=cli"])

    assert code == EXIT_OK
    assert len(fake_api.requests) == 3
    assert all(r.fields["folder"] == "shop" for r in fake_api.requests)
    assert all(r.fields["tags"] == "cli" for r in fake_api.requests)


def test_run_cli_critical_error_exit_code(credentials, fake_api, image_dir, tmp_path):
    image_dir(3)
    fake_api.failures["img00.png"] = server_error(401)
    error_file = tmp_path / "errors.txt"

    code = run_cli([str(image_dir.path), "--max-parallel", "1", "-e", str(error_file)])

    assert code == EXIT_CRITICAL
    assert len(fake_api.requests) == 1
    assert "critical error" in error_file.read_text()


def test_run_cli_existing_error_file(credentials, fake_api, image_dir, tmp_path, capsys):
    image_dir(1)
    error_file = tmp_path / "errors.txt"
    error_file.write_text("old")

    code = run_cli([str(image_dir.path), "-e", str(error_file)])

    assert code == EXIT_FAILURES
    assert "could not open error log" in capsys.readouterr().err
    assert fake_api.requests == []
