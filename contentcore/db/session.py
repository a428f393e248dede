# contentcore/db/session.py
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from contentcore.core.settings import settings


def enable_sqlite_savepoints(engine: Engine) -> None:
    """
    pysqlite emits BEGIN lazily, which breaks SAVEPOINT (Session.begin_nested).
    Take over transaction control so bulk per-item savepoints behave like PG.
    """

    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def make_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        eng = create_engine(url, connect_args={"check_same_thread": False})
        enable_sqlite_savepoints(eng)
        return eng
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=1800,  # keep connections fresh on Heroku
    )


engine = make_engine(settings.SQLALCHEMY_DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
