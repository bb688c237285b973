from pydantic_settings import BaseSettings
from pathlib import Path
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Centralized configuration for all components."""

    # Application
    app_name: str = "Presales Assessment Engine"
    app_version: str = "1.0.0"
    environment: str = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # LLM (Ollama)
    llm_base_url: str = "http://localhost:11434"
    llm_model: str = "llama3.1:8b"
    llm_timeout_seconds: int = 120
    llm_temperature: float = 0.2
    llm_max_tokens: int = 4096
    # Hard deadline around a single model call, covers retries and slow streams
    llm_call_deadline_seconds: float = 180.0

    # Storage
    data_jobs_path: str = "./data/jobs"
    data_assessments_path: str = "./data/assessments"
    data_estimations_path: str = "./data/timeline_estimations"
    data_uploads_path: str = "./data/uploads"
    presales_configuration_file: str = "./data/config/presales_configuration.json"
    timeline_references_file: str = "./data/config/timeline_references.json"

    # Worker
    worker_count: int = 1
    worker_error_delay_seconds: float = 5.0
    job_lease_seconds: int = 900
    # Interval of the expired-lease sweep while running, 0 disables it
    job_reap_interval_seconds: float = 60.0
    recover_jobs_on_startup: bool = True

    class Config:
        env_file = ".env"
        env_prefix = "PRESALES_"
        extra = "ignore"

    def get_jobs_path(self) -> Path:
        """Get jobs directory as Path, creating if needed."""
        path = Path(self.data_jobs_path)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def get_assessments_path(self) -> Path:
        """Get assessments directory as Path, creating if needed."""
        path = Path(self.data_assessments_path)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def get_estimations_path(self) -> Path:
        """Get timeline estimations directory as Path, creating if needed."""
        path = Path(self.data_estimations_path)
        path.mkdir(parents=True, exist_ok=True)
        return path


@lru_cache()
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
