from typing import List

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Invoice Data Aggregator"
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "changeme"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "screening"
    DB_POOL_MIN_SIZE: int = 1
    DB_POOL_MAX_SIZE: int = 10

    # Aggregation
    AGGREGATION_TIMEOUT_SECONDS: float = 30.0  # 0 disables the limit
    SERVICE_ID_DELIMITER: str = ","
    STATUS_TABLE_ALLOWLIST: List[str] = []  # empty allows any valid identifier

    # Admin tokens
    TOKEN_TTL_SECONDS: int = 3600

    class Config:
        case_sensitive = True

settings = Settings()
