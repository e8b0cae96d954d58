from io import BytesIO
from unittest.mock import AsyncMock, patch

import pytest
from PIL import Image

from warbler.models.user import User, UserProfile
from warbler.services.auth import UsernameTakenError
from warbler.services.profile import ProfileNotFoundError, ProfileService
from warbler.utils.storage import MAX_AVATAR_BYTES


def image_bytes(size: tuple[int, int], image_format: str) -> bytes:
    output = BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(output, format=image_format)
    return output.getvalue()


@pytest.mark.unit
class TestGetProfile:
    async def test_get_profile(self, profile_service: ProfileService, fake_db):
        # Arrange
        profile = UserProfile(
            id=2,
            username="bob",
            follower_count=3,
            following_count=1,
            is_following=True,
        )
        with patch.object(profile_service, "_get_profile", return_value=profile) as mock_get:
            # Act
            result = await profile_service.get_profile(1, 2)

            # Assert
            assert result == profile
            mock_get.assert_awaited_once_with(fake_db.conn, 1, 2)

    async def test_missing_profile(self, profile_service: ProfileService):
        with patch.object(profile_service, "_get_profile", return_value=None):
            with pytest.raises(ProfileNotFoundError, match="User not found."):
                await profile_service.get_profile(1, 2)

    async def test_non_positive_id(self, profile_service: ProfileService):
        with patch.object(profile_service, "_get_profile") as mock_get:
            with pytest.raises(ProfileNotFoundError):
                await profile_service.get_profile(1, 0)
            mock_get.assert_not_called()


@pytest.mark.unit
class TestUpdateProfile:
    async def test_update_username_and_bio(
        self, profile_service: ProfileService, mocker, test_user: User
    ):
        # Arrange
        updated = test_user.model_copy(update={"username": "alice_2", "bio": "new bio"})
        mocker.patch.object(profile_service, "_get_user", side_effect=[test_user, updated])
        mocker.patch("warbler.services.profile.fetch_one", return_value=None)
        mock_apply = mocker.patch.object(profile_service, "_apply_updates")

        # Act
        result = await profile_service.update_profile(
            test_user.id, {"username": "Alice_2", "bio": "new bio"}
        )

        # Assert
        assert result == updated
        assert mock_apply.await_args.args[2] == {"username": "alice_2", "bio": "new bio"}

    async def test_same_username_different_case_is_not_a_conflict(
        self, profile_service: ProfileService, mocker, test_user: User
    ):
        # Arrange
        mocker.patch.object(profile_service, "_get_user", return_value=test_user)
        mock_fetch = mocker.patch("warbler.services.profile.fetch_one")
        mock_apply = mocker.patch.object(profile_service, "_apply_updates")

        # Act
        await profile_service.update_profile(test_user.id, {"username": "ALICE"})

        # Assert
        mock_fetch.assert_not_called()
        assert mock_apply.await_args.args[2] == {"username": "alice"}

    async def test_username_taken(
        self, profile_service: ProfileService, mocker, test_user: User
    ):
        # Arrange
        mocker.patch.object(profile_service, "_get_user", return_value=test_user)
        mocker.patch("warbler.services.profile.fetch_one", return_value={"id": 2})
        mock_apply = mocker.patch.object(profile_service, "_apply_updates")

        # Act & Assert
        with pytest.raises(UsernameTakenError, match="Username is already taken."):
            await profile_service.update_profile(test_user.id, {"username": "bob"})
        mock_apply.assert_not_called()

    async def test_invalid_bio(self, profile_service: ProfileService, mocker, test_user: User):
        mocker.patch.object(profile_service, "_get_user", return_value=test_user)
        mock_apply = mocker.patch.object(profile_service, "_apply_updates")

        with pytest.raises(ValueError, match="Bio must be 200 characters or fewer."):
            await profile_service.update_profile(test_user.id, {"bio": "x" * 201})
        mock_apply.assert_not_called()

    async def test_empty_update_changes_nothing(
        self, profile_service: ProfileService, mocker, test_user: User
    ):
        mocker.patch.object(profile_service, "_get_user", return_value=test_user)
        mock_apply = mocker.patch.object(profile_service, "_apply_updates")

        assert await profile_service.update_profile(test_user.id, {}) == test_user
        mock_apply.assert_not_called()

    async def test_missing_user(self, profile_service: ProfileService, mocker):
        mocker.patch.object(profile_service, "_get_user", return_value=None)

        with pytest.raises(ProfileNotFoundError):
            await profile_service.update_profile(99, {"bio": "hi"})


@pytest.mark.unit
class TestUpdateAvatar:
    async def test_upload_resizes_and_saves_url(
        self,
        profile_service: ProfileService,
        mock_storage: AsyncMock,
        mocker,
        test_user: User,
    ):
        # Arrange
        mock_storage.upload.return_value = "/uploads/profiles/new.png"
        updated = test_user.model_copy(update={"profile_picture_url": "/uploads/profiles/new.png"})
        mocker.patch.object(profile_service, "_get_user", return_value=updated)
        mock_execute = mocker.patch("warbler.services.profile.execute")

        # Act
        result = await profile_service.update_avatar(
            test_user.id, image_bytes((800, 600), "PNG"), "image/png"
        )

        # Assert
        assert result.profile_picture_url == "/uploads/profiles/new.png"
        key, stored, content_type = mock_storage.upload.await_args.args
        assert key.startswith("profiles/") and key.endswith(".png")
        assert content_type == "image/png"
        with Image.open(BytesIO(stored)) as image:
            assert image.size == (400, 400)
        assert mock_execute.await_args.kwargs["url"] == "/uploads/profiles/new.png"

    async def test_jpeg_gets_jpg_extension(
        self, profile_service: ProfileService, mock_storage: AsyncMock, mocker, test_user: User
    ):
        mock_storage.upload.return_value = "/uploads/profiles/new.jpg"
        mocker.patch.object(profile_service, "_get_user", return_value=test_user)
        mocker.patch("warbler.services.profile.execute")

        await profile_service.update_avatar(
            test_user.id, image_bytes((100, 300), "JPEG"), "image/jpeg"
        )

        assert mock_storage.upload.await_args.args[0].endswith(".jpg")

    async def test_missing_file(self, profile_service: ProfileService, mock_storage: AsyncMock):
        with pytest.raises(ValueError, match="Avatar file is required."):
            await profile_service.update_avatar(1, None, None)
        mock_storage.upload.assert_not_called()

    async def test_wrong_type(self, profile_service: ProfileService, mock_storage: AsyncMock):
        with pytest.raises(ValueError, match="Only JPEG and PNG files are allowed."):
            await profile_service.update_avatar(1, b"GIF89a", "image/gif")
        mock_storage.upload.assert_not_called()

    async def test_too_large(self, profile_service: ProfileService, mock_storage: AsyncMock):
        with pytest.raises(ValueError, match="File must be 2MB or smaller."):
            await profile_service.update_avatar(
                1, b"\x00" * (MAX_AVATAR_BYTES + 1), "image/png"
            )
        mock_storage.upload.assert_not_called()

    async def test_unreadable_image(
        self, profile_service: ProfileService, mock_storage: AsyncMock
    ):
        with pytest.raises(ValueError, match="Only JPEG and PNG files are allowed."):
            await profile_service.update_avatar(1, b"not an image", "image/png")
        mock_storage.upload.assert_not_called()
