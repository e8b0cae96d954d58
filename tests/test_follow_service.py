from unittest.mock import patch

import pytest

from warbler.models.user import User
from warbler.services.follow import (
    FollowService,
    FollowTargetNotFoundError,
    SelfFollowError,
)


@pytest.mark.unit
class TestFollowService:
    @pytest.mark.asyncio
    async def test_follow_user_success(
        self,
        follow_service: FollowService,
        fake_db,
        test_user: User,
        another_test_user: User,
    ):
        # Arrange
        with patch.object(follow_service, "_create_follow_relationship") as mock_create:
            # Act
            await follow_service.follow_user(test_user.id, another_test_user.id)

            # Assert
            mock_create.assert_awaited_once_with(
                fake_db.conn, test_user.id, another_test_user.id
            )

    @pytest.mark.asyncio
    async def test_follow_self_fails(self, follow_service: FollowService, test_user: User):
        with patch.object(follow_service, "_create_follow_relationship") as mock_create:
            with pytest.raises(SelfFollowError, match="You cannot follow yourself."):
                await follow_service.follow_user(test_user.id, test_user.id)
            mock_create.assert_not_called()

    @pytest.mark.asyncio
    async def test_follow_missing_user(
        self, follow_service: FollowService, mocker, test_user: User
    ):
        # Arrange
        mocker.patch("warbler.services.follow.fetch_one", return_value=None)
        mock_execute = mocker.patch("warbler.services.follow.execute")

        # Act & Assert
        with pytest.raises(FollowTargetNotFoundError, match="User not found."):
            await follow_service.follow_user(test_user.id, 999)
        mock_execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_follow_is_idempotent_insert(
        self, follow_service: FollowService, mocker, test_user: User
    ):
        mocker.patch("warbler.services.follow.fetch_one", return_value={"id": 2})
        mock_execute = mocker.patch("warbler.services.follow.execute")

        await follow_service.follow_user(test_user.id, 2)

        assert "INSERT IGNORE INTO follows" in mock_execute.await_args.args[1]

    @pytest.mark.asyncio
    async def test_unfollow_user(
        self, follow_service: FollowService, fake_db, test_user: User
    ):
        with patch.object(follow_service, "_remove_follow_relationship") as mock_remove:
            await follow_service.unfollow_user(test_user.id, 2)

            mock_remove.assert_awaited_once_with(fake_db.conn, test_user.id, 2)

    @pytest.mark.asyncio
    async def test_unfollow_non_positive_id(
        self, follow_service: FollowService, test_user: User
    ):
        with pytest.raises(FollowTargetNotFoundError):
            await follow_service.unfollow_user(test_user.id, -1)

    @pytest.mark.asyncio
    async def test_get_followed_ids(self, follow_service: FollowService, mocker):
        mocker.patch(
            "warbler.services.follow.fetch_all",
            return_value=[{"following_id": 2}, {"following_id": 5}],
        )

        assert await follow_service.get_followed_ids(1) == [2, 5]
