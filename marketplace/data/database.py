# marketplace/data/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from marketplace.utils.settings import DATABASE_URL, SQLITE_BUSY_TIMEOUT


class Base(DeclarativeBase):
    pass


def make_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    engine = create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
    )

    #sqlite: pysqlite sam otwiera transakcje dopiero przy zapisie, wylaczamy to
    #i zaczynamy kazda transakcje od BEGIN IMMEDIATE -> zapisy ida po kolei
    #klucze obce (ON DELETE CASCADE) w sqlite trzeba wlaczyc per polaczenie
    @event.listens_for(engine, "connect")
    def _configure_sqlite(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


engine = make_engine(DATABASE_URL)
SessionLocal = make_session_factory(engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    #import modeli, zeby zarejestrowaly sie w Base.metadata
    import marketplace.data.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
