from sqlalchemy import Engine, event
from sqlmodel import Session, SQLModel, create_engine, select

from sitesearch.core.config import settings


def enable_sqlite_foreign_keys(db_engine: Engine) -> None:
    # SQLite ignores ON DELETE CASCADE unless the pragma is set per connection
    if db_engine.dialect.name != "sqlite":
        return

    @event.listens_for(db_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(uri: str) -> Engine:
    connect_args = {"check_same_thread": False} if uri.startswith("sqlite") else {}
    db_engine = create_engine(uri, connect_args=connect_args)
    enable_sqlite_foreign_keys(db_engine)
    return db_engine


engine = build_engine(settings.SQLALCHEMY_DATABASE_URI)


# make sure all SQLModel models are imported (sitesearch.models) before initializing DB
# otherwise, SQLModel might fail to initialize relationships properly
# for more details: https://github.com/fastapi/full-stack-fastapi-template/issues/28


def init_db(session: Session) -> None:
    # Tables should be created with Alembic migrations in a multi-node setup,
    # the crawler keeps its four tables simple enough to create them directly.
    from sitesearch import models  # noqa: F401

    SQLModel.metadata.create_all(session.get_bind())
    session.exec(select(1))
