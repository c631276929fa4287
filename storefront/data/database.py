# storefront/data/database.py
from typing import Callable, Iterator, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from storefront.utils.settings import DATABASE_URL

T = TypeVar("T")

engine = create_engine(DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def with_transaction(db: Session, fn: Callable[[Session], T]) -> T:
    """
    Runs fn inside one unit of work on the given session.
    Commit when fn returns, rollback on any exception (nothing fn wrote survives).
    """
    try:
        result = fn(db)
        db.commit()
        return result
    except Exception:
        db.rollback()
        raise


def init_db() -> None:
    # models must be registered on Base before create_all
    import storefront.data.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
