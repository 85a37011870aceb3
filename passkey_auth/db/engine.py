# (c) Copyright Datacraft, 2026
from sqlalchemy import create_engine, event, Engine
from sqlalchemy.pool import NullPool, StaticPool
from sqlalchemy.orm import sessionmaker, Session as SQLAlchemySession


def _begin_immediate(engine: Engine) -> None:
    """Take SQLite's write lock when a transaction begins.

    pysqlite defers BEGIN until the first write, so two transactions can
    both read before either writes; with BEGIN IMMEDIATE the second one
    waits for the first to commit.
    """

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_engine(db_url: str) -> Engine:
    """Engine for ``db_url``; in-memory SQLite shares one connection."""
    if db_url.startswith("sqlite"):
        if ":memory:" in db_url or db_url in ("sqlite://", "sqlite:///"):
            return create_engine(
                db_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        engine = create_engine(db_url, connect_args={"check_same_thread": False})
        _begin_immediate(engine)
        return engine
    return create_engine(db_url, poolclass=NullPool)


def make_session_factory(engine: Engine) -> sessionmaker[SQLAlchemySession]:
    return sessionmaker(engine, expire_on_commit=False)
