"""Configuration settings for the Meterly backend.

Wraps environment variables and provides defaults.
"""

from typing import Optional

from pydantic import PostgresDsn, ValidationInfo, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class.

    Attributes:
    ----------
        PROJECT_NAME (str): The name of the project.
        LOCAL_DEVELOPMENT (bool): Whether the application is running locally.
        ENVIRONMENT (str): The deployment environment (local, dev, test, prod).
        DEBUG (bool): Whether debug mode is enabled.
        LOG_LEVEL (str): The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        FIRST_SUPERUSER (str): The email of the account used when auth is disabled.
        AUTH_ENABLED (bool): Whether bearer tokens are verified against Auth0.
        AUTH0_DOMAIN (Optional[str]): The Auth0 tenant domain.
        AUTH0_AUDIENCE (Optional[str]): The Auth0 API audience.
        POSTGRES_HOST (str): The PostgreSQL server hostname.
        POSTGRES_PORT (int): The PostgreSQL server port.
        POSTGRES_DB (str): The PostgreSQL database name.
        POSTGRES_USER (str): The PostgreSQL username.
        POSTGRES_PASSWORD (str): The PostgreSQL password.
        SQLALCHEMY_ASYNC_DATABASE_URI (Optional[PostgresDsn]): The SQLAlchemy async database URI.
        DB_POOL_SIZE (int): Connections kept open per process.
        DB_MAX_OVERFLOW (int): Extra connections allowed during bursts.
        RUN_ALEMBIC_MIGRATIONS (bool): Whether to run the alembic migrations on startup.
        CRON_SECRET (Optional[str]): Shared secret for operator-triggered jobs.
        STRIPE_WEBHOOK_SECRET (Optional[str]): Signing secret for Stripe webhooks.
        STRIPE_PRICE_STARTER (Optional[str]): Stripe price id of the starter plan.
        STRIPE_PRICE_PROFESSIONAL (Optional[str]): Stripe price id of the professional plan.
        MONTHLY_GRANT_BATCH_LIMIT (int): Default number of accounts per grant run.
        USAGE_RECORDING_ENABLED (Optional[bool]): Whether the session usage endpoint is
            exposed. Defaults to enabled everywhere except prod.
    """

    PROJECT_NAME: str = "Meterly"
    LOCAL_DEVELOPMENT: bool = False
    ENVIRONMENT: str = "local"

    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    FIRST_SUPERUSER: str = "admin@meterly.dev"

    AUTH_ENABLED: Optional[bool] = False
    AUTH0_DOMAIN: Optional[str] = None
    AUTH0_AUDIENCE: Optional[str] = None

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "meterly"
    POSTGRES_USER: str = "meterly"
    POSTGRES_PASSWORD: str = "meterly"
    SQLALCHEMY_ASYNC_DATABASE_URI: Optional[PostgresDsn] = None

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 10

    RUN_ALEMBIC_MIGRATIONS: bool = False

    CRON_SECRET: Optional[str] = None

    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_PRICE_STARTER: Optional[str] = None
    STRIPE_PRICE_PROFESSIONAL: Optional[str] = None

    MONTHLY_GRANT_BATCH_LIMIT: int = 5000
    USAGE_RECORDING_ENABLED: Optional[bool] = None

    @field_validator("AUTH0_DOMAIN", "AUTH0_AUDIENCE", mode="before")
    def validate_auth0_settings(cls, v: str, info: ValidationInfo) -> str:
        """Validate Auth0 settings when AUTH_ENABLED is True.

        Args:
        ----
            v (str): The value of the Auth0 setting.
            info (ValidationInfo): The validation context containing all field values.

        Returns:
        -------
            str: The validated Auth0 setting.

        Raises:
        ------
            ValueError: If AUTH_ENABLED is True and the Auth0 setting is empty.
        """
        auth_enabled = info.data.get("AUTH_ENABLED", False)
        if auth_enabled and not v:
            raise ValueError(f"{info.field_name} must be set when AUTH_ENABLED is True")
        return v

    @field_validator("SQLALCHEMY_ASYNC_DATABASE_URI", mode="before")
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> PostgresDsn:
        """Build the SQLAlchemy database URI.

        Args:
        ----
            v (Optional[str]): The value of the SQLALCHEMY_ASYNC_DATABASE_URI setting.
            info (ValidationInfo): The validation context containing all field values.

        Returns:
        -------
            PostgresDsn: The assembled SQLAlchemy async database URI.

        """
        if isinstance(v, str):
            return v

        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=info.data.get("POSTGRES_USER"),
            password=info.data.get("POSTGRES_PASSWORD"),
            host=info.data.get("POSTGRES_HOST", "localhost"),
            port=info.data.get("POSTGRES_PORT"),
            path=f"{info.data.get('POSTGRES_DB') or ''}",
        )

    @property
    def usage_recording_enabled(self) -> bool:
        """Whether callers may record usage directly through the session API."""
        if self.USAGE_RECORDING_ENABLED is not None:
            return self.USAGE_RECORDING_ENABLED
        return self.ENVIRONMENT != "prod"

    @property
    def stripe_price_to_plan(self) -> dict[str, str]:
        """Map configured Stripe price ids to plan codes."""
        mapping = {}
        if self.STRIPE_PRICE_STARTER:
            mapping[self.STRIPE_PRICE_STARTER] = "starter"
        if self.STRIPE_PRICE_PROFESSIONAL:
            mapping[self.STRIPE_PRICE_PROFESSIONAL] = "professional"
        return mapping


settings = Settings()
