from __future__ import annotations

import pytest

from vibe.app.core.config import settings
from vibe.app.directory import USERS
from vibe.app.services import AvatarService, AvatarUploadError


@pytest.fixture()
def avatars(memory_directory, fake_minio, monkeypatch: pytest.MonkeyPatch) -> AvatarService:
    monkeypatch.setattr(settings, "MINIO_PUBLIC_ENDPOINT", "https://cdn.example.com")
    return AvatarService(memory_directory, client_factory=lambda: fake_minio, bucket="avatars")


@pytest.mark.asyncio
async def test_upload_replaces_previous_picture(avatars, memory_directory, fake_minio, add_user) -> None:
    await add_user(memory_directory, "u1", "Alice")

    first = await avatars.upload_avatar("u1", b"jpeg-1")
    second = await avatars.upload_avatar("u1", b"jpeg-2")

    profile = await memory_directory.get_document(USERS, "u1")
    assert profile["avatarUrl"] == second
    assert second.startswith("https://cdn.example.com/avatars/u1-")
    assert list(fake_minio.objects) == [("avatars", avatars.object_name_from_url(second))]
    stored = fake_minio.objects[("avatars", avatars.object_name_from_url(second))]
    assert stored.data == b"jpeg-2"
    assert stored.content_type == "image/jpeg"
    assert avatars.object_name_from_url(first) not in {name for _, name in fake_minio.objects}


@pytest.mark.asyncio
async def test_failed_upload_keeps_profile(avatars, memory_directory, fake_minio, add_user) -> None:
    await add_user(memory_directory, "u1", "Alice", avatarUrl="https://elsewhere/me.jpg")
    fake_minio.fail_put = True

    with pytest.raises(AvatarUploadError):
        await avatars.upload_avatar("u1", b"jpeg")

    profile = await memory_directory.get_document(USERS, "u1")
    assert profile["avatarUrl"] == "https://elsewhere/me.jpg"


@pytest.mark.asyncio
async def test_cleanup_failure_is_not_fatal(avatars, memory_directory, fake_minio, add_user) -> None:
    await add_user(memory_directory, "u1", "Alice")
    await avatars.upload_avatar("u1", b"jpeg-1")
    fake_minio.fail_remove = True

    url = await avatars.upload_avatar("u1", b"jpeg-2")

    assert (await memory_directory.get_document(USERS, "u1"))["avatarUrl"] == url
    assert len(fake_minio.objects) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("image", [b"", b"x" * (settings.AVATAR_MAX_BYTES + 1)])
async def test_rejects_empty_or_oversized_images(avatars, memory_directory, add_user, image) -> None:
    await add_user(memory_directory, "u1", "Alice")

    with pytest.raises(AvatarUploadError):
        await avatars.upload_avatar("u1", image)


def test_foreign_urls_have_no_object_name(avatars) -> None:
    assert avatars.object_name_from_url("https://elsewhere/me.jpg") is None
    assert avatars.object_name_from_url(None) is None
