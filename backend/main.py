import logging
from contextlib import asynccontextmanager
from threading import Lock

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from backend.auth.identity_provider import IdentityProvider, SupabaseIdentityProvider
from backend.core import config
from backend.core.errors import register_error_handlers
from backend.database import create_db_engine, create_session_factory, ensure_user_schema
from backend.routes import auth_routes

logger = logging.getLogger(__name__)


def configure_logging(level: str = config.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the database and identity provider handles not injected at creation."""
    engine = None
    if app.state.session_factory is None or app.state.identity_provider is None:
        config.validate_runtime_config()

    if app.state.session_factory is None:
        engine = create_db_engine(config.DATABASE_URL, use_ssl=config.DATABASE_SSL)
        try:
            ensure_user_schema(engine)
        except SQLAlchemyError:
            logger.exception('Database initialization failed. Check DATABASE_URL and Postgres credentials.')
            raise
        app.state.session_factory = create_session_factory(engine)

    if app.state.identity_provider is None:
        app.state.identity_provider = SupabaseIdentityProvider.from_settings(
            config.SUPABASE_URL,
            config.SUPABASE_ANON_KEY,
            config.SUPABASE_SERVICE_ROLE_KEY,
        )
        logger.info('Identity provider client initialized for %s', config.SUPABASE_URL)

    yield

    if engine is not None:
        engine.dispose()


def create_app(
    session_factory: sessionmaker | None = None,
    identity_provider: IdentityProvider | None = None,
    expose_error_details: bool | None = None,
) -> FastAPI:
    app = FastAPI(title='Restaurant POS Auth API', lifespan=lifespan)

    app.state.session_factory = session_factory
    app.state.identity_provider = identity_provider
    app.state.bootstrap_lock = Lock()

    if expose_error_details is None:
        expose_error_details = not config.IS_PRODUCTION
    register_error_handlers(app, expose_details=expose_error_details)

    @app.get('/health')
    def health():
        return {'status': 'ok'}

    app.include_router(auth_routes.router, prefix='/api/auth')
    return app


configure_logging()
app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run(app, host='0.0.0.0', port=config.PORT)


if __name__ == '__main__':
    main()
