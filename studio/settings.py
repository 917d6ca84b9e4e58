from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional, ClassVar

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    data_root: Path = Field(default=Path(__file__).resolve().parents[1] / "data")
    llm_mode: Literal["mock", "groq", "deepseek", "ollama", "gemini"] = Field(default="mock")

    # Model configurations
    groq_model: str = Field(default="llama-3.3-70b-versatile")
    deepseek_model: str = Field(default="deepseek-chat")
    ollama_model: str = Field(default="llama3.2:3b")
    gemini_model: str = Field(default="gemini-2.5-flash")

    # API Keys
    groq_api_key: Optional[str] = Field(default=None)
    deepseek_api_key: Optional[str] = Field(default=None)
    gemini_api_key: Optional[str] = Field(default=None)
    admin_api_key: Optional[str] = Field(default=None)

    # Workspace persistence
    storage_backend: Literal["sqlite", "memory"] = Field(default="sqlite")
    storage_key: str = Field(default="agentic_studio_pro_v1")

    # "lenient" coerces malformed LLM output to defaults, "strict" halts the run
    response_policy: Literal["lenient", "strict"] = Field(default="lenient")
    stage_timeout_seconds: float = Field(default=180.0, gt=0)

    # Simulated build
    compile_delay_seconds: float = Field(default=1.2, ge=0)
    compile_failure_probability: float = Field(default=0.25, ge=0.0, le=1.0)
    max_heal_attempts: int = Field(default=1, ge=0, le=5)
    healing_target_file: str = Field(default="src/App.tsx")
    healing_error: str = Field(default="Module resolution conflict in App components.")

    # Resource simulator
    resource_tick_seconds: float = Field(default=1.5, gt=0)
    cpu_smoothing: float = Field(default=0.3, gt=0.0, le=1.0)
    cpu_active_target: float = Field(default=85.0, ge=0.0, le=100.0)
    cpu_idle_target: float = Field(default=6.0, ge=0.0, le=100.0)

    # Load the repository's root .env regardless of the process cwd.
    root_env: ClassVar[str] = str(Path(__file__).resolve().parents[1] / ".env")

    model_config = {
        "env_file": root_env,
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def database_path(self) -> Path:
        return self.data_root / "studio.db"


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    if settings.storage_backend == "sqlite":
        settings.data_root.mkdir(parents=True, exist_ok=True)
    return settings
