import httpx
import pytest

from artqr.core.config import Settings
from artqr.services.storage import ArtifactStore, ArtifactStoreError

SOURCE = "https://replicate.delivery/pbxt/abc/out-0.png"


@pytest.fixture
def store(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("missing.png"):
            return httpx.Response(404)
        return httpx.Response(200, content=b"\x89PNG fake", headers={"content-type": "image/png"})

    config = Settings(
        USE_GCS=False,
        USE_LOCAL_STORAGE=True,
        LOCAL_STORAGE_PATH=str(tmp_path),
        API_BASE_URL="http://testserver/",
    )
    return ArtifactStore(config, http_transport=httpx.MockTransport(handler))


def test_artifact_path_is_deterministic():
    path = ArtifactStore.artifact_path(SOURCE)
    assert path == ArtifactStore.artifact_path(SOURCE)
    assert path.startswith("artistic/") and path.endswith(".png")
    assert path != ArtifactStore.artifact_path(SOURCE + "?v=2")


@pytest.mark.anyio
async def test_upload_from_url_archives_locally(store, tmp_path):
    public_url = await store.upload_from_url(SOURCE, {"url": "https://example.com", "style": "sunset"})

    path = ArtifactStore.artifact_path(SOURCE)
    assert public_url == f"http://testserver/files/{path}"
    assert (tmp_path / path).read_bytes() == b"\x89PNG fake"
    assert await store.get_file(path) == b"\x89PNG fake"
    assert await store.download_bytes(public_url) == b"\x89PNG fake"


@pytest.mark.anyio
async def test_reupload_overwrites_same_object(store, tmp_path):
    first = await store.upload_from_url(SOURCE, {})
    second = await store.upload_from_url(SOURCE, {})
    assert first == second
    assert len(list((tmp_path / "artistic").iterdir())) == 1


@pytest.mark.anyio
async def test_download_failure_raises(store):
    with pytest.raises(ArtifactStoreError):
        await store.upload_from_url("https://replicate.delivery/missing.png", {})


@pytest.mark.anyio
async def test_get_file_rejects_traversal(store):
    with pytest.raises(FileNotFoundError):
        await store.get_file("../outside.txt")


@pytest.mark.anyio
async def test_list_files_under_prefix(store, tmp_path):
    await store.upload_from_url(SOURCE, {})
    await store.upload_from_url(SOURCE + "?v=2", {})
    await store.upload_bytes(b"notes", "scratch/readme.txt", "text/plain")

    listed = await store.list_files()
    assert listed == sorted([ArtifactStore.artifact_path(SOURCE), ArtifactStore.artifact_path(SOURCE + "?v=2")])
    assert await store.list_files("scratch/") == ["scratch/readme.txt"]
    assert await store.list_files("missing/") == []


@pytest.mark.anyio
async def test_delete_file_removes_archived_artifact(store, tmp_path):
    await store.upload_from_url(SOURCE, {})
    path = ArtifactStore.artifact_path(SOURCE)

    assert await store.delete_file(path) is True
    assert not (tmp_path / path).exists()
    assert await store.list_files() == []
    assert await store.delete_file(path) is False


@pytest.mark.anyio
async def test_delete_file_rejects_traversal(store):
    with pytest.raises(FileNotFoundError):
        await store.delete_file("../outside.txt")
