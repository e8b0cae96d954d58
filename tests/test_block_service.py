from unittest.mock import MagicMock, patch

import pytest

from warbler.models.block import Block
from warbler.models.user import User
from warbler.schemas.database_records import CreateBlockRecord
from warbler.services.block import (
    BlockError,
    BlockService,
    BlockTargetNotFoundError,
    SelfBlockError,
)


@pytest.mark.unit
class TestBlockService:
    @pytest.mark.asyncio
    async def test_blocked_set_is_symmetric(
        self, block_service: BlockService, fake_db, test_user: User
    ):
        # Arrange: alice blocked 2, and 3 blocked alice
        with patch.object(block_service, "_get_block_edges") as mock_edges:
            mock_edges.return_value = [
                Block(blocker_id=test_user.id, blocked_id=2),
                Block(blocker_id=3, blocked_id=test_user.id),
            ]

            # Act
            blocked = await block_service.get_blocked_set(test_user.id)

            # Assert
            assert blocked == {2, 3}
            mock_edges.assert_awaited_once_with(fake_db.conn, test_user.id)

    @pytest.mark.asyncio
    async def test_blocked_set_empty_without_edges(
        self, block_service: BlockService, test_user: User
    ):
        with patch.object(block_service, "_get_block_edges") as mock_edges:
            mock_edges.return_value = []

            assert await block_service.get_blocked_set(test_user.id) == set()

    @pytest.mark.asyncio
    async def test_blocked_set_deduplicates_mutual_blocks(
        self, block_service: BlockService, test_user: User
    ):
        with patch.object(block_service, "_get_block_edges") as mock_edges:
            mock_edges.return_value = [
                Block(blocker_id=test_user.id, blocked_id=2),
                Block(blocker_id=2, blocked_id=test_user.id),
            ]

            assert await block_service.get_blocked_set(test_user.id) == {2}

    @pytest.mark.asyncio
    async def test_block_user_success(
        self,
        block_service: BlockService,
        fake_db,
        test_user: User,
        another_test_user: User,
    ):
        # Arrange
        with patch.object(block_service, "_create_block_relationship") as mock_create:
            mock_create.return_value = CreateBlockRecord(
                blocked_user_id=another_test_user.id,
                removed_forward_follow=True,
                removed_reverse_follow=True,
            )

            # Act
            result = await block_service.block(test_user.id, another_test_user.id)

            # Assert
            assert result.blocked_user_id == another_test_user.id
            assert result.removed_forward_follow is True
            assert result.removed_reverse_follow is True
            mock_create.assert_awaited_once_with(
                fake_db.conn, test_user.id, another_test_user.id
            )

    @pytest.mark.asyncio
    async def test_block_self_fails(self, block_service: BlockService, test_user: User):
        # Arrange
        with patch.object(block_service, "_create_block_relationship") as mock_create:
            # Act & Assert
            with pytest.raises(SelfBlockError, match="You cannot block yourself."):
                await block_service.block(test_user.id, test_user.id)
            mock_create.assert_not_called()

    @pytest.mark.asyncio
    async def test_block_non_positive_id_is_not_found(
        self, block_service: BlockService, test_user: User
    ):
        with patch.object(block_service, "_create_block_relationship") as mock_create:
            with pytest.raises(BlockTargetNotFoundError, match="User not found."):
                await block_service.block(test_user.id, 0)
            mock_create.assert_not_called()

    @pytest.mark.asyncio
    async def test_block_missing_user(
        self, block_service: BlockService, test_user: User
    ):
        with patch.object(block_service, "_create_block_relationship") as mock_create:
            mock_create.side_effect = BlockTargetNotFoundError("User not found.")

            with pytest.raises(BlockError):
                await block_service.block(test_user.id, 999)

    @pytest.mark.asyncio
    async def test_block_removes_follows_in_both_directions(
        self, block_service: BlockService, fake_db, mocker, test_user: User
    ):
        # Arrange
        mocker.patch("warbler.services.block.fetch_one", return_value={"id": 2})
        mock_execute = mocker.patch(
            "warbler.services.block.execute",
            side_effect=[MagicMock(rowcount=1), MagicMock(rowcount=1), MagicMock(rowcount=0)],
        )

        # Act
        result = await block_service.block(test_user.id, 2)

        # Assert
        assert result.removed_forward_follow is True
        assert result.removed_reverse_follow is False
        follow_deletes = [
            call.kwargs for call in mock_execute.await_args_list if "follower_id" in call.kwargs
        ]
        assert follow_deletes == [
            {"follower_id": test_user.id, "following_id": 2},
            {"follower_id": 2, "following_id": test_user.id},
        ]

    @pytest.mark.asyncio
    async def test_unblock_user_success(
        self,
        block_service: BlockService,
        fake_db,
        test_user: User,
        another_test_user: User,
    ):
        # Arrange
        with patch.object(block_service, "_remove_block_relationship") as mock_remove:
            # Act
            await block_service.unblock(test_user.id, another_test_user.id)

            # Assert
            mock_remove.assert_awaited_once_with(
                fake_db.conn, test_user.id, another_test_user.id
            )

    @pytest.mark.asyncio
    async def test_is_blocked_between(self, block_service: BlockService, test_user: User):
        with patch.object(block_service, "_get_block_edges") as mock_edges:
            mock_edges.return_value = [Block(blocker_id=5, blocked_id=test_user.id)]

            assert await block_service.is_blocked_between(test_user.id, 5) is True
            assert await block_service.is_blocked_between(test_user.id, 6) is False
