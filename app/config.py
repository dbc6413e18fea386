from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Collaborator action surface (stores applications/stages, enforces auth)
    PIPELINE_API_BASE_URL: str = "http://localhost:5000"
    PIPELINE_API_TOKEN: str | None = None

    # Board loaded at startup (None starts with an empty board until PUT /pipeline/board)
    PIPELINE_JOB_ID: int | None = None
    PIPELINE_ACTOR: str = "system"

    # Transport policy - owned by the HTTP client, never by the engine
    PIPELINE_API_TIMEOUT: float = 30.0
    PIPELINE_API_MAX_RETRIES: int = 3
    PIPELINE_API_BACKOFF_FACTOR: float = 0.5

    # =================================================================
    # BULK OPERATION SETTINGS
    # =================================================================
    BULK_CONCURRENCY_LIMIT: int = 3
    BULK_MAX_TARGETS: int = 500

    # Archive is a bulk status update, not a separate status
    ARCHIVE_STATUS: str = "rejected"
    ARCHIVE_NOTE: str = "[Archived via bulk action]"

    INTERVIEW_MAX_INTERVAL_HOURS: float = 24.0

    # Proxy settings for request context
    TRUST_X_FORWARDED_FOR: bool = False
    TRUSTED_PROXY_IPS: list[str] = []

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def bulk_concurrency_limit(self, override: int | None = None) -> int:
        """Use the override when positive, otherwise the configured default."""
        if override is not None and override > 0:
            return override
        return max(1, self.BULK_CONCURRENCY_LIMIT)

    def pipeline_api_headers(self) -> dict:
        """Default headers sent to the collaborator service."""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.PIPELINE_API_TOKEN:
            headers["Authorization"] = f"Bearer {self.PIPELINE_API_TOKEN}"
        return headers


settings = Settings()
