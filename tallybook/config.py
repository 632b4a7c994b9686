from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "TALLYBOOK_"}

    # App
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    # Tenant currency, amounts are never converted
    currency: str = "USD"

    # Reject schedules that leave a balance unpaid at the end of the term
    # instead of returning them flagged as degenerate
    strict_schedules: bool = False


settings = Settings()
