"""Shared fixtures: fresh mapped classes and SQLite engines for every test."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import JSON, ForeignKey, String, create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from model_versions import reset_defaults


def _strip(value: str | None) -> str | None:
    return value.strip() if value is not None else None


def _shout(value: str | None) -> str | None:
    return value.upper() if value is not None else None


@dataclass
class Models:
    Base: type
    User: type
    Document: type


def build_models() -> Models:
    """Declare a new base with its own metadata so each test tracks from scratch."""

    class Base(DeclarativeBase):
        pass

    class User(Base):
        __tablename__ = "users"

        id: Mapped[int] = mapped_column(primary_key=True)
        name: Mapped[str] = mapped_column(String(100), nullable=False)
        email: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True, default=None)

    class Document(Base):
        __tablename__ = "documents"

        id: Mapped[int] = mapped_column(primary_key=True)
        owner_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
        title: Mapped[str] = mapped_column(String(200), nullable=False, info={"set": _strip, "get": _shout})
        tags: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    return Models(Base=Base, User=User, Document=Document)


def build_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def count_rows(engine: Engine, table: Any) -> int:
    with engine.connect() as connection:
        return connection.execute(select(func.count()).select_from(table)).scalar_one()


class Actor:
    """Stand-in for request-scoped "current user" state."""

    def __init__(self) -> None:
        self.user: Any = None

    def __call__(self) -> Any:
        return self.user


@pytest.fixture
def models() -> Models:
    return build_models()


@pytest.fixture
def engine(tmp_path: Path):
    engine = build_engine(tmp_path / "tracked.db")
    yield engine
    engine.dispose()


@pytest.fixture
def session_local(engine: Engine):
    return sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def actor() -> Actor:
    return Actor()


@pytest.fixture(autouse=True)
def _restore_defaults():
    yield
    reset_defaults()
