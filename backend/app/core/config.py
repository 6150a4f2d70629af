from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path
import json
import os


BACKEND_DIR = Path(__file__).parent.parent.parent
SETTINGS_FILE = BACKEND_DIR / "settings.json"

COLLISION_POLICIES = ("last_wins", "first_wins", "auto_suffix")


def load_settings_from_file() -> dict:
    """Load settings from JSON file if exists."""
    if SETTINGS_FILE.exists():
        try:
            with open(SETTINGS_FILE) as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            pass
    return {}


def save_settings_to_file(settings: dict) -> None:
    """Save settings to JSON file."""
    with open(SETTINGS_FILE, "w") as f:
        json.dump(settings, f, indent=2)


class Settings(BaseSettings):
    # OpenAI
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_model: str = "gpt-4o-mini"

    # Hosted inference function (takes precedence over OpenAI when set)
    inference_url: str = ""
    inference_timeout: float = 120.0

    # Storage
    database_path: str = str(BACKEND_DIR / "workspace.db")
    workspace_db_dir: str = str(BACKEND_DIR / "project_dbs")

    # Conversation
    context_window: int = 5
    message_history_limit: int = 100

    # Workspace
    artifact_collision_policy: str = "last_wins"
    default_expanded_directories: List[str] = ["src"]
    preview_row_limit: int = 100

    # Server
    backend_port: int = 8000
    cors_origins: List[str] = ["http://localhost:5173"]
    chat_rate_limit: str = "30/minute"

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True

    def __init__(self, **kwargs):
        # Load from settings file first
        file_settings = load_settings_from_file()

        # Merge: kwargs > file_settings > env vars (handled by pydantic)
        merged = {**file_settings, **kwargs}

        super().__init__(**merged)

        # Handle CORS_ORIGINS as JSON string from env
        cors_env = os.getenv("CORS_ORIGINS")
        if cors_env:
            try:
                self.cors_origins = json.loads(cors_env)
            except json.JSONDecodeError:
                pass

        if self.artifact_collision_policy not in COLLISION_POLICIES:
            self.artifact_collision_policy = "last_wins"

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.database_path}"

    def project_database_url(self, project_id: str) -> str:
        """SQLite URL of the embedded database a project's app reads and writes.

        Raises:
            ValueError: if the id is empty or holds characters other than
                letters, digits, ``-`` and ``_``
        """
        safe_id = "".join(c for c in project_id if c.isalnum() or c in "-_")
        if not safe_id or safe_id != project_id:
            raise ValueError(f"Invalid project id: {project_id!r}")
        return f"sqlite:///{Path(self.workspace_db_dir) / f'{safe_id}.db'}"

    def get_effective_settings(self) -> dict:
        """Get current effective settings (for API response)."""
        return {
            "openai_api_key": self._mask_key(self.openai_api_key),
            "openai_base_url": self.openai_base_url,
            "openai_model": self.openai_model,
            "inference_url": self.inference_url,
            "context_window": self.context_window,
            "artifact_collision_policy": self.artifact_collision_policy,
            "preview_row_limit": self.preview_row_limit,
        }

    def _mask_key(self, key: str) -> str:
        """Mask a secret key for display."""
        if not key:
            return ""
        if len(key) <= 8:
            return "*" * len(key)
        return key[:4] + "*" * (len(key) - 8) + key[-4:]


def reload_settings() -> "Settings":
    """Reload settings from file and environment."""
    global settings
    settings = Settings()
    return settings


settings = Settings()
