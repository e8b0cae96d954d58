from pydantic import BaseModel, ConfigDict


class Block(BaseModel):
    """Model representing a block relationship between users.

    The edge is directional, but visibility treats it as symmetric: either
    party stops seeing the other's content.

    Attributes:
        blocker_id: ID of the user doing the blocking
        blocked_id: ID of the user being blocked
    """

    model_config = ConfigDict(frozen=True)

    blocker_id: int
    blocked_id: int

    def other_party(self, user_id: int) -> int | None:
        """Return the user on the other end of the edge from ``user_id``."""
        if self.blocker_id == user_id:
            return self.blocked_id
        if self.blocked_id == user_id:
            return self.blocker_id
        return None
