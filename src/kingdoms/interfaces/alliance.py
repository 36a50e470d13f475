"""Alliance Directory Protocol Interface.

Alliance bookkeeping lives outside the engine; transfers between allies only
need to ask whether a player belongs to an alliance.
"""

from typing import Protocol


class IAllianceDirectory(Protocol):
    """Read-only view of alliance membership."""

    def is_member(self, alliance_id: int, player_id: int) -> bool:
        """Check whether a player currently belongs to an alliance.

        Args:
            alliance_id: Alliance to check
            player_id: Player to look up

        Returns:
            True if the player is a member (any role) of the alliance
        """
        ...
