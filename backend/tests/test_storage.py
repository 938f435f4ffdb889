import pytest

from ugcpipe.services.storage import LocalStorage, extension_for


@pytest.mark.asyncio
async def test_upload_writes_file_and_returns_public_url(tmp_path):
    storage = LocalStorage(tmp_path, public_base_url="/files/")

    result = await storage.upload(b"clip", "job-1/scene_1.mp4", "outputs")

    assert result.url == "/files/outputs/job-1/scene_1.mp4"
    assert (tmp_path / "outputs" / "job-1" / "scene_1.mp4").read_bytes() == b"clip"


@pytest.mark.asyncio
@pytest.mark.parametrize("bucket, filename", [("outputs", "../../etc/passwd"), ("..", "x.mp4")])
async def test_upload_rejects_traversal(tmp_path, bucket, filename):
    storage = LocalStorage(tmp_path / "root")

    with pytest.raises(ValueError):
        await storage.upload(b"x", filename, bucket)


def test_extension_for():
    assert extension_for("video/mp4") == ".mp4"
    assert extension_for("IMAGE/PNG") == ".png"
    assert extension_for(None, ".mp4") == ".mp4"
