from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from ..models import db as _db_models  # noqa: F401 - ensure models register with metadata
from .config import get_settings


def _enable_sqlite_write_serialization(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first DML statement, so the reads that
    # guard a unit of work would run outside it. Take over transaction
    # control and open every unit with BEGIN IMMEDIATE instead.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_for_url(database_url: str) -> Engine:
    connect_args: dict[str, Any] = {}
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        connect_args = {
            "check_same_thread": False,
            "timeout": get_settings().sqlite_busy_timeout,
        }
    new_engine = create_engine(database_url, echo=False, connect_args=connect_args)
    if is_sqlite:
        _enable_sqlite_write_serialization(new_engine)
    return new_engine


settings = get_settings()
engine = create_engine_for_url(settings.database_url)


def init_db() -> None:
    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def set_engine(new_engine: Engine) -> None:
    global engine
    engine = new_engine
