from threading import Lock
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


Base = declarative_base()

_schema_lock = Lock()


def create_db_engine(database_url: str, use_ssl: bool = False) -> Engine:
    if not database_url:
        raise RuntimeError('DATABASE_URL is not configured.')

    if database_url.startswith('sqlite'):
        options = {'connect_args': {'check_same_thread': False}}
        if ':memory:' in database_url or database_url in ('sqlite://', 'sqlite+pysqlite://'):
            options['poolclass'] = StaticPool
        return create_engine(database_url, **options)

    connect_args = {'sslmode': 'require'} if use_ssl else {}
    return create_engine(
        database_url,
        connect_args=connect_args,
        pool_size=10,
        max_overflow=0,
        pool_pre_ping=True,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )


def ensure_user_schema(engine: Engine) -> None:
    from backend.models.user import User

    with _schema_lock:
        if User.__tablename__ not in inspect(engine).get_table_names():
            Base.metadata.create_all(bind=engine, tables=[User.__table__])


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
