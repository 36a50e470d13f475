"""Alliance membership lookups backed by the ``alliance_members`` table."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from kingdoms.models import AllianceMember


class SqlAllianceDirectory:
    """Answers membership questions from the shared relational store."""

    def __init__(self, session: Session):
        self.session = session

    def is_member(self, alliance_id: int, player_id: int) -> bool:
        member_id = self.session.scalar(
            select(AllianceMember.id).where(
                AllianceMember.alliance_id == alliance_id,
                AllianceMember.player_id == player_id,
            )
        )
        return member_id is not None
