"""
core/db.py -- SQLAlchemy engine factory shared by every store.

SQLite needs two things no matter which store opens it: check_same_thread off
(FastAPI runs sync routes in a thread pool) and WAL journal mode so readers
never block on a writer. Other backends get a plain engine.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", set_wal_mode)
    return engine
