from typing import Optional

from sqlmodel import select

from trivia.db.repositories.base import BaseRepository

from trivia.db.models.rooms import Room

class RoomRepository(BaseRepository[Room]):
    model = Room

    def get_by_code(self, code: str) -> Optional[Room]:
        """Le code est stocké en majuscules : recherche insensible à la casse."""
        stmt = select(Room).where(Room.code == code.strip().upper())
        return self.session.exec(stmt).first()
