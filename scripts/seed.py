from trivia.db.session import engine, Session, init_db
from trivia.core.logging import setup_logging

from trivia.db.seed import seed_all


def run_seed(seed_path: str = "trivia/db/seed_data.yaml") -> None:
    setup_logging()
    init_db()
    with Session(engine) as session:
        seed_all(session=session, seed_path=seed_path)


if __name__ == "__main__":
    run_seed()
