from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger
from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .core.config import settings


def _ensure_sqlite_path(url: str) -> None:
    if not url.startswith("sqlite"):
        return

    parsed = make_url(url)
    database = parsed.database
    if not database or database == ":memory:":
        return

    path = Path(database)
    path.parent.mkdir(parents=True, exist_ok=True)


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str, *, echo: bool = False, **overrides):
    connect_args: dict[str, object] = dict(overrides.pop("connect_args", {}) or {})
    engine_kwargs: dict[str, object] = {
        "echo": echo,
        "future": True,
        "pool_pre_ping": True,
    }

    parsed = make_url(url)
    backend = parsed.get_backend_name()
    driver = parsed.get_driver_name()

    if backend == "sqlite":
        connect_args["check_same_thread"] = False
        _ensure_sqlite_path(url)
    else:
        # Supabase's pooler drops idle connections; recycle before it does.
        engine_kwargs["pool_recycle"] = 300

        if backend.startswith("postgresql"):
            connect_args.setdefault("keepalives", 1)
            connect_args.setdefault("keepalives_idle", 120)
            connect_args.setdefault("keepalives_interval", 30)
            connect_args.setdefault("keepalives_count", 5)
            # PgBouncer in transaction mode rejects server-side PREPARE.
            if driver == "psycopg":
                connect_args.setdefault("prepare_threshold", None)

    if connect_args:
        engine_kwargs["connect_args"] = connect_args
    engine_kwargs.update(overrides)

    db_engine = create_engine(url, **engine_kwargs)
    if backend == "sqlite":
        event.listen(db_engine, "connect", _enable_sqlite_foreign_keys)
    return db_engine


def create_session_factory(db_engine) -> sessionmaker[Session]:
    # expire_on_commit=False keeps returned records readable after the unit of
    # work that produced them has committed.
    return sessionmaker(
        bind=db_engine,
        autoflush=True,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


engine = create_db_engine(settings.resolved_database_url, echo=settings.debug)
SessionLocal = create_session_factory(engine)
Base = declarative_base()


def _ensure_column(db_engine, table: str, column: str, definition: str) -> None:
    inspector = inspect(db_engine)
    if table not in inspector.get_table_names():
        return
    columns = {col["name"] for col in inspector.get_columns(table)}
    if column in columns:
        return
    logger.info("Adding missing column {}.{}", table, column)
    with db_engine.begin() as connection:
        connection.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {definition}"))


def _apply_schema_updates(db_engine) -> None:
    # Tables created before optimistic versioning existed lack these columns.
    _ensure_column(db_engine, "club_event_series", "version", "INTEGER NOT NULL DEFAULT 1")
    _ensure_column(db_engine, "club_events", "version", "INTEGER NOT NULL DEFAULT 1")
    _ensure_column(db_engine, "club_event_series", "timezone", "VARCHAR(64)")
    with db_engine.begin() as connection:
        connection.execute(
            text(
                "CREATE INDEX IF NOT EXISTS ix_club_events_group_starts"
                " ON club_events (group_id, starts_at)"
            )
        )
        connection.execute(
            text(
                "CREATE INDEX IF NOT EXISTS ix_club_events_series_starts"
                " ON club_events (series_id, starts_at)"
            )
        )


def get_db() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(db_engine=None) -> None:
    from . import models  # noqa: F401

    target = db_engine or engine
    Base.metadata.create_all(bind=target)
    _apply_schema_updates(target)
