from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import RedisDsn, Field, model_validator, field_validator
from typing import Optional


VALIDATION_STRATEGIES = ("stop-on-error", "skip-errors")
COUNTER_POLICIES = ("entity_exists", "legacy")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding='utf-8', extra='ignore')

    # --- General ---
    PROJECT_NAME: str = "Catalog Stock Import Service"
    ENVIRONMENT: str = Field("stage", validation_alias="ENV", alias_priority=2)
    LOG_LEVEL: str = "INFO"

    # --- Primary DB ---
    DATABASE_URL: str = "sqlite:///./catalog_import.db"

    # --- Local storage for uploaded import files ---
    LOCAL_STORAGE_PATH: str = "/data/uploads"

    # --- Redis ---
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None

    # --- Celery Redis ---
    CELERY_BROKER_DB_NUMBER: int = 0
    CELERY_RESULT_BACKEND_DB_NUMBER: int = 0
    CELERY_BROKER_URL: Optional[RedisDsn] = None
    CELERY_RESULT_BACKEND_URL: Optional[RedisDsn] = None

    # --- Import behaviour ---
    IMPORT_BUNCH_SIZE: int = Field(100, ge=1)
    IMPORT_VALIDATION_STRATEGY: str = "stop-on-error"
    IMPORT_ALLOWED_ERROR_COUNT: int = Field(10, ge=0)
    IMPORT_COUNTER_POLICY: str = "entity_exists"

    @field_validator('IMPORT_VALIDATION_STRATEGY', 'IMPORT_COUNTER_POLICY', mode='before')
    @classmethod
    def strip_lower(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('IMPORT_VALIDATION_STRATEGY')
    @classmethod
    def validate_strategy(cls, v):
        if v not in VALIDATION_STRATEGIES:
            raise ValueError(f"IMPORT_VALIDATION_STRATEGY must be one of {VALIDATION_STRATEGIES}")
        return v

    @field_validator('IMPORT_COUNTER_POLICY')
    @classmethod
    def validate_counter_policy(cls, v):
        if v not in COUNTER_POLICIES:
            raise ValueError(f"IMPORT_COUNTER_POLICY must be one of {COUNTER_POLICIES}")
        return v

    @model_validator(mode='after')
    def _construct_derived_urls(self) -> 'Settings':
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        if self.CELERY_BROKER_URL is None:
            self.CELERY_BROKER_URL = RedisDsn(
                f"redis://{auth}{self.REDIS_HOST}"
                f":{self.REDIS_PORT}/{self.CELERY_BROKER_DB_NUMBER}"
            )
        if self.CELERY_RESULT_BACKEND_URL is None:
            self.CELERY_RESULT_BACKEND_URL = RedisDsn(
                f"redis://{auth}{self.REDIS_HOST}"
                f":{self.REDIS_PORT}/{self.CELERY_RESULT_BACKEND_DB_NUMBER}"
            )
        return self


# Instantiate
settings = Settings()
