from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read env from container + optionally from files
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.docker"),
        extra="ignore",
        case_sensitive=False,
    )

    # App
    ENVIRONMENT: str = Field(default="dev", validation_alias=AliasChoices("ENVIRONMENT", "environment"))
    APP_NAME: str = Field(default="gst_invoicing", validation_alias=AliasChoices("APP_NAME", "app_name"))
    LOG_LEVEL: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    DEBUG: bool = Field(default=False, validation_alias=AliasChoices("DEBUG", "debug"))

    # Infrastructure
    DATABASE_URL: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/gst_invoicing",
        validation_alias=AliasChoices("DATABASE_URL", "database_url"),
    )
    DATABASE_ECHO: bool = Field(default=False, validation_alias=AliasChoices("DATABASE_ECHO", "database_echo"))

    # Auth (tokens are issued by the auth service)
    USER_JWT_SECRET: str = Field(default="change-me", validation_alias=AliasChoices("USER_JWT_SECRET", "user_jwt_secret"))
    JWT_ALGORITHM: str = Field(default="HS256", validation_alias=AliasChoices("JWT_ALGORITHM", "jwt_algorithm"))

    # Invoicing
    INVOICE_DEFAULT_DUE_DAYS: int = Field(
        default=30,
        ge=0,
        validation_alias=AliasChoices("INVOICE_DEFAULT_DUE_DAYS", "invoice_default_due_days"),
    )
    INVOICE_NUMBER_MAX_RETRIES: int = Field(
        default=3,
        ge=1,
        validation_alias=AliasChoices("INVOICE_NUMBER_MAX_RETRIES", "invoice_number_max_retries"),
    )
    INVOICE_NUMBER_PAD_WIDTH: int = Field(
        default=3,
        ge=1,
        validation_alias=AliasChoices("INVOICE_NUMBER_PAD_WIDTH", "invoice_number_pad_width"),
    )
    INVOICE_TAX_INCLUSIVE_DEFAULT: bool = Field(
        default=False,
        validation_alias=AliasChoices("INVOICE_TAX_INCLUSIVE_DEFAULT", "invoice_tax_inclusive_default"),
    )


settings = Settings()
