from typing import Optional

from sqlmodel import select
from sqlalchemy import delete

from trivia.db.repositories.base import BaseRepository

from trivia.db.models.round_results import RoundResult

class RoundResultRepository(BaseRepository[RoundResult]):
    model = RoundResult

    def get_for_question(self, room_id: int, question_id: int) -> Optional[RoundResult]:
        stmt = select(RoundResult).where(
            RoundResult.room_id == room_id,
            RoundResult.question_id == question_id,
        )
        return self.session.exec(stmt).first()

    def delete_by_room(self, room_id: int, *, commit: bool = True) -> int:
        result = self.session.exec(delete(RoundResult).where(RoundResult.room_id == room_id))
        if commit:
            self.session.commit()
        else:
            self.session.flush()
        return result.rowcount
