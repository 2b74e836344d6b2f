"""Database engine and session factory used across the application."""

from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import StaticPool, text
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from cloudwise.runtime.config.config_data import ConfigData
from cloudwise.runtime.context import get_config


class DbSessionService:
    def __init__(self, engine: Engine | None = None):
        """Initialize the shared database engine and session factory."""
        self._engine = engine or self._create_engine(get_config())

    @property
    def engine(self) -> Engine:
        return self._engine

    def _create_engine(self, config: ConfigData) -> Engine:
        db_config = config.database
        logger.info(
            "Configuring database engine for environment: {}", config.app.environment
        )

        if db_config.url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every session sees an empty database
            return create_engine(
                db_config.url,
                connect_args=self._get_connect_args(config),
                poolclass=StaticPool,
            )

        engine_kwargs = {
            "pool_pre_ping": True,
            "echo": False,
            "connect_args": self._get_connect_args(config),
        }
        if not db_config.is_sqlite:
            engine_kwargs.update(
                {
                    "pool_size": db_config.pool_size,
                    "max_overflow": db_config.max_overflow,
                    "pool_timeout": db_config.pool_timeout,
                    "pool_recycle": db_config.pool_recycle,
                }
            )
        return create_engine(db_config.url, **engine_kwargs)

    def _get_connect_args(self, config: ConfigData) -> dict:
        """Database-specific connection arguments; every call gets a bounded timeout."""
        db_config = config.database
        connect_args: dict = {}

        if "postgresql" in db_config.url:
            connect_args.update(
                {
                    "application_name": f"cloudwise_{config.app.environment}_api",
                    "connect_timeout": db_config.connect_timeout,
                    "options": f"-c statement_timeout={db_config.statement_timeout_ms}",
                }
            )
        elif db_config.is_sqlite:
            connect_args.update(
                {
                    "check_same_thread": False,
                    "timeout": db_config.statement_timeout_ms / 1000,
                }
            )
            if config.app.environment == "production":
                logger.warning(
                    "SQLite is not recommended for production use. "
                    "Consider PostgreSQL for better performance and reliability."
                )

        return connect_args

    def create_all(self) -> None:
        """Create all database tables."""
        from cloudwise.entities import (  # noqa: F401
            AwsAccountTable,
            AzureAccountTable,
            GcpAccountTable,
            UserTable,
        )

        SQLModel.metadata.create_all(self._engine)
        logger.info("Database initialized with tables.")

    def get_session(self) -> Session:
        """Return a new SQLModel session bound to the shared engine."""
        return Session(self._engine, expire_on_commit=False, autoflush=True)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Context manager style helper for repositories and tests."""
        db = self.get_session()
        try:
            yield db
            db.commit()
        except Exception as e:
            db.rollback()
            logger.bind(error_type=type(e).__name__).error("Database transaction failed")
            raise
        finally:
            db.close()

    def health_check(self) -> bool:
        """Perform a health check on the database connection."""
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
                return True
        except Exception as e:
            logger.bind(error_type=type(e).__name__).error("Database health check failed")
            return False

    def dispose(self) -> None:
        self._engine.dispose()
