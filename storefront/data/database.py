# storefront/data/database.py
import os
from collections.abc import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from storefront.utils.settings import DATABASE_URL, env_flag


class Base(DeclarativeBase):
    pass


_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None
_SESSIONMAKER: sessionmaker | None = None


def _sqlite_pragmas(engine: Engine) -> None:
    # pysqlite sam zarzadza BEGIN i psuje SAVEPOINTy, przejmujemy to
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def get_engine() -> Engine:
    """Return a cached engine, rebuilt when DATABASE_URL changes (tests override it)."""
    global _ENGINE, _ENGINE_URL, _SESSIONMAKER

    url = os.getenv("DATABASE_URL", DATABASE_URL)

    if _ENGINE is not None and _ENGINE_URL == url:
        return _ENGINE

    is_sqlite = url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    _ENGINE = create_engine(url, connect_args=connect_args, pool_pre_ping=not is_sqlite)
    if is_sqlite:
        _sqlite_pragmas(_ENGINE)
    _ENGINE_URL = url
    _SESSIONMAKER = sessionmaker(bind=_ENGINE, class_=Session, autoflush=False)
    return _ENGINE


def db_session() -> Session:
    get_engine()
    assert _SESSIONMAKER is not None
    return _SESSIONMAKER()


def get_db() -> Generator[Session, None, None]:
    db = db_session()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    # import modeli, zeby SQLAlchemy zarejestrowal je w Base.metadata
    import storefront.data.models  # noqa: F401

    # czytane przy wywolaniu, testy ustawiaja env po imporcie
    if not env_flag("DB_AUTO_CREATE", "true"):
        return
    Base.metadata.create_all(bind=get_engine())
