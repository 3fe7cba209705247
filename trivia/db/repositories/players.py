from typing import Optional, Sequence

from sqlmodel import select, func
from sqlalchemy import update

from trivia.db.repositories.base import BaseRepository

from trivia.db.models.players import Player

class PlayerRepository(BaseRepository[Player]):
    model = Player

    def list_by_room(self, room_id: int) -> Sequence[Player]:
        stmt = (
            select(Player)
            .where(Player.room_id == room_id)
            .order_by(Player.joined_at.asc(), Player.id.asc())
        )
        return self.session.exec(stmt).all()

    def get_in_room(self, room_id: int, player_id: int) -> Optional[Player]:
        stmt = select(Player).where(Player.id == player_id, Player.room_id == room_id)
        return self.session.exec(stmt).first()

    def count_by_room(self, room_id: int) -> int:
        stmt = select(func.count(Player.id)).where(Player.room_id == room_id)
        return int(self.session.exec(stmt).one())

    def increment_score(self, player_id: int, points: int = 1, *, commit: bool = True) -> None:
        """Incrément atomique côté SQL (pas de lecture-modification-écriture en Python)."""
        stmt = (
            update(Player)
            .where(Player.id == player_id)
            .values(score=Player.score + points)
            .execution_options(synchronize_session=False)
        )
        self.session.exec(stmt)
        if commit:
            self.session.commit()
        else:
            self.session.expire_all()

    def reset_scores(self, room_id: int, *, commit: bool = True) -> None:
        stmt = (
            update(Player)
            .where(Player.room_id == room_id)
            .values(score=0)
            .execution_options(synchronize_session=False)
        )
        self.session.exec(stmt)
        if commit:
            self.session.commit()
        else:
            self.session.expire_all()
