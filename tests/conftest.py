import os

# avant tout import de trivia : base en mémoire, pas d'echo SQL
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import random
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from trivia.api.v1.dependencies import get_clock, get_media_service, get_question_cache, get_rng
from trivia.db.models.packs import Pack, PackQuestion
from trivia.db.models.questions import Question
from trivia.db.repositories.answers import AnswerRepository
from trivia.db.repositories.players import PlayerRepository
from trivia.db.repositories.questions import QuestionRepository
from trivia.db.repositories.rooms import RoomRepository
from trivia.db.repositories.round_results import RoundResultRepository
from trivia.db.session import get_session, init_db
from trivia.features.media.services import MediaService
from trivia.features.questions.bank import QuestionBank
from trivia.features.questions.cache import TTLCache
from trivia.features.rooms.services import RoomService
from trivia.main import app


class FakeClock:
    """Horloge manipulable : clock() renvoie self.now (UTC naïf)."""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 20, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FakeS3:
    def __init__(self):
        self.calls = []

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        self.calls.append((ClientMethod, Params, ExpiresIn))
        return f"https://cdn.test/{Params['Bucket']}/{Params['Key']}?X-Amz-Expires={ExpiresIn}"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def cache():
    return TTLCache(60.0)


@pytest.fixture
def fake_s3():
    return FakeS3()


def add_pack(session: Session, slug: str, round_type: str = "general", label: str | None = None) -> Pack:
    pack = Pack(slug=slug, label=label or slug.title(), round_type=round_type)
    session.add(pack)
    session.commit()
    session.refresh(pack)
    return pack


def add_question(session: Session, pack: Pack | None = None, **fields) -> Question:
    fields.setdefault("round_type", "general")
    fields.setdefault("answer_type", "mcq")
    fields.setdefault("text", "Question ?")
    if fields["answer_type"] == "mcq":
        fields.setdefault("options", ["A", "B", "C", "D"])
        fields.setdefault("answer_index", 0)
    question = Question(**fields)
    session.add(question)
    session.commit()
    session.refresh(question)
    if pack is not None:
        session.add(PackQuestion(pack_id=pack.id, question_id=question.id))
        session.commit()
    return question


@pytest.fixture
def general_pack(session):
    """Pack 'general' avec 5 QCM."""
    pack = add_pack(session, "general", label="Culture générale")
    for i in range(5):
        add_question(
            session,
            pack,
            text=f"Question {i} ?",
            options=[f"Bonne {i}", f"Faux {i}a", f"Faux {i}b", f"Faux {i}c"],
            answer_index=0,
        )
    return pack


@pytest.fixture
def make_service(session, clock, rng, cache):
    def _make(**kwargs) -> RoomService:
        return RoomService(
            session=session,
            room_repo=RoomRepository(session),
            player_repo=PlayerRepository(session),
            answer_repo=AnswerRepository(session),
            round_result_repo=RoundResultRepository(session),
            question_bank=QuestionBank(repo=QuestionRepository(session), cache=cache),
            clock=kwargs.pop("clock", clock),
            rng=kwargs.pop("rng", rng),
            **kwargs,
        )
    return _make


@pytest.fixture
def client(engine, clock, rng, cache, fake_s3):
    def _session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_rng] = lambda: rng
    app.dependency_overrides[get_question_cache] = lambda: cache
    app.dependency_overrides[get_media_service] = lambda: MediaService(s3_client_public_factory=lambda: fake_s3)

    # pas de "with" : l'événement startup (init_db sur la vraie base) ne tourne pas
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
