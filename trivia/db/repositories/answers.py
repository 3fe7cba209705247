from sqlmodel import select, func
from sqlalchemy import delete

from trivia.db.repositories.base import BaseRepository

from trivia.db.models.answers import Answer

class AnswerRepository(BaseRepository[Answer]):
    model = Answer

    def count_players_for_question(self, room_id: int, question_id: int) -> int:
        """Nombre de joueurs distincts ayant répondu à cette question dans la salle."""
        stmt = (
            select(func.count(func.distinct(Answer.player_id)))
            .where(Answer.room_id == room_id, Answer.question_id == question_id)
        )
        return int(self.session.exec(stmt).one())

    def delete_by_room(self, room_id: int, *, commit: bool = True) -> int:
        result = self.session.exec(delete(Answer).where(Answer.room_id == room_id))
        if commit:
            self.session.commit()
        else:
            self.session.flush()
        return result.rowcount
