from sqlalchemy import create_engine, event
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings

engine_kwargs: dict = {"pool_pre_ping": True}
connect_args: dict = {}

# Workbook cells carry accented site names (Anápolis, Condicionante...);
# force the client encoding so Windows terminals do not write mojibake.
url = make_url(settings.DATABASE_URL)
if url.get_backend_name() in {"postgresql", "postgres"}:
    connect_args.setdefault("options", "-c client_encoding=UTF8")

if url.get_backend_name() == "sqlite":
    connect_args = {**connect_args, "check_same_thread": False}
    if url.database in (None, "", ":memory:"):
        engine_kwargs["poolclass"] = StaticPool

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, **engine_kwargs)

if url.get_backend_name() == "sqlite":
    # pysqlite opens transactions lazily and breaks SAVEPOINT; let SQLAlchemy emit BEGIN
    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
