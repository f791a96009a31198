from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from .errors import StoreUnavailable
from .settings import settings


logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url or "sqlite:///./skillcoach.db"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


def init_db() -> None:
	# Import for side effect: registers every table on Base.metadata
	from . import models  # noqa: F401
	Base.metadata.create_all(bind=engine)


@contextmanager
def store_call(db: Session, action: str) -> Iterator[Session]:
	"""Run a unit of store work, translating driver failures.

	Any SQLAlchemy error rolls the session back and surfaces as
	StoreUnavailable so callers can tell it apart from validation errors.
	Nothing is retried here.
	"""
	try:
		yield db
	except SQLAlchemyError as exc:
		db.rollback()
		logger.exception("store call failed: %s", action)
		raise StoreUnavailable(f"{action} failed", details={"reason": exc.__class__.__name__}) from exc
