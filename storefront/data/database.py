# storefront/data/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from storefront.utils.settings import DATABASE_URL

Base = declarative_base()


def make_engine(url: str = DATABASE_URL, sqlite_begin: str = "BEGIN") -> Engine:
    """
    Build an engine for the given URL.

    pysqlite does not open a transaction before SELECT and breaks SAVEPOINT,
    so for sqlite the transaction is opened explicitly (``sqlite_begin``).
    "BEGIN IMMEDIATE" takes the write lock up front and serializes writers.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql(sqlite_begin)

    return engine


engine = make_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False)


def init_db(bind: Engine = engine) -> None:
    # models must be imported before create_all so they land in Base.metadata
    import storefront.data.models  # noqa: F401

    Base.metadata.create_all(bind=bind)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
