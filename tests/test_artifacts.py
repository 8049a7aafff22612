"""Tests for on-disk artifact storage."""

import io
from pathlib import Path

import pytest

from update_panel.artifacts import ArtifactStorage
from update_panel.errors import InvalidInput, NotFound, StorageFailure
from conftest import make_zip


@pytest.fixture
def artifacts(settings) -> ArtifactStorage:
    return ArtifactStorage(settings.upload_dir)


def test_filename_is_derived_from_version():
    assert ArtifactStorage.filename_for("v1.2") == "bot-v1.2.zip"


def test_save_writes_zip(artifacts, settings, zip_bytes):
    filename = artifacts.save("v1.0", io.BytesIO(zip_bytes))

    assert filename == "bot-v1.0.zip"
    assert (settings.upload_dir / filename).read_bytes() == zip_bytes


def test_save_overwrites_previous_artifact(artifacts, settings):
    artifacts.save("v1.0", io.BytesIO(make_zip(content="one")))
    second = make_zip(content="two")
    artifacts.save("v1.0", io.BytesIO(second))

    assert (settings.upload_dir / "bot-v1.0.zip").read_bytes() == second


def test_non_zip_rejected_and_cleaned_up(artifacts, settings):
    with pytest.raises(InvalidInput):
        artifacts.save("v1.0", io.BytesIO(b"definitely not a zip"))

    assert list(settings.upload_dir.iterdir()) == []


def test_failed_upload_keeps_previous_artifact(artifacts, settings, zip_bytes):
    artifacts.save("v1.0", io.BytesIO(zip_bytes))
    with pytest.raises(InvalidInput):
        artifacts.save("v1.0", io.BytesIO(b"garbage"))

    assert (settings.upload_dir / "bot-v1.0.zip").read_bytes() == zip_bytes


def test_path_for_rejects_traversal(artifacts):
    with pytest.raises(NotFound):
        artifacts.path_for("../secrets.zip")


def test_path_for_missing(artifacts):
    with pytest.raises(NotFound):
        artifacts.path_for("bot-v9.zip")


def test_delete(artifacts, settings, zip_bytes):
    artifacts.save("v1.0", io.BytesIO(zip_bytes))

    assert artifacts.delete("bot-v1.0.zip") is True
    assert not (settings.upload_dir / "bot-v1.0.zip").exists()
    assert artifacts.delete("bot-v1.0.zip") is False


def test_delete_failure_is_storage_failure(artifacts, zip_bytes, monkeypatch):
    artifacts.save("v1.0", io.BytesIO(zip_bytes))

    def locked(self, missing_ok=False):
        raise PermissionError("locked")

    monkeypatch.setattr(Path, "unlink", locked)
    with pytest.raises(StorageFailure):
        artifacts.delete("bot-v1.0.zip")
