import os

import pytest

from appshelf.assets.blobs import LocalBlobStore, asset_path


def test_asset_path_is_unique_and_sanitized():
    first = asset_path("logos", "../../My Logo!.png")
    second = asset_path("logos", "../../My Logo!.png")
    assert first != second
    assert first.startswith("logos/")
    assert first.endswith("_My_Logo_.png")
    assert ".." not in first


def test_owns_only_references_below_base_url(blobs):
    assert blobs.owns(f"{blobs.base_url}/logos/a.png")
    assert not blobs.owns("https://cdn.example.com/logos/a.png")
    assert not blobs.owns(blobs.base_url)
    assert not blobs.owns(None)


@pytest.mark.asyncio
async def test_upload_and_delete(blobs):
    url = await blobs.upload("screenshots/abc_1.png", b"png-bytes", content_type="image/png")
    assert url == f"{blobs.base_url}/screenshots/abc_1.png"
    target = os.path.join(blobs.directory, "screenshots", "abc_1.png")
    with open(target, "rb") as f:
        assert f.read() == b"png-bytes"

    await blobs.delete(url)
    assert not os.path.exists(target)


@pytest.mark.asyncio
async def test_delete_missing_asset_raises(blobs):
    with pytest.raises(FileNotFoundError):
        await blobs.delete(f"{blobs.base_url}/logos/missing.png")


@pytest.mark.asyncio
async def test_delete_rejects_foreign_references(blobs):
    with pytest.raises(ValueError):
        await blobs.delete("https://cdn.example.com/logo.png")


@pytest.mark.asyncio
async def test_upload_rejects_paths_outside_directory(tmp_path):
    store = LocalBlobStore(str(tmp_path / "assets"), "https://assets.test")
    with pytest.raises(ValueError, match="escapes"):
        await store.upload("../outside.png", b"x")
