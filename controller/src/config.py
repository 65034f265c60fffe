from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    backend_url: str = "http://localhost:8080/api/v1"
    backend_token: str = ""
    request_timeout: float = 10.0

    # Polling settings
    poll_interval: float = 5.0
    grace_poll_count: int = 6

    # Credential store
    redis_url: str = "redis://localhost:6379/0"
    credential_namespace: str = "opsgate:creds"

    finished_history: int = 20
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "OPSGATE_"

@lru_cache()
def get_settings() -> Settings:
    return Settings()
