"""Application configuration using pydantic-settings."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_project_root() -> Path:
    """
    Find the project root directory.
    Works whether running from the repository root or from inside the package.
    """
    cwd = Path.cwd()
    if cwd.name == "chathub" and (cwd.parent / "pyproject.toml").exists():
        return cwd.parent
    return cwd


def resolve_database_path(db_url: str, project_root: Path) -> str:
    """
    Resolve the database URL to use an absolute path.
    Handles relative SQLite paths regardless of working directory.
    """
    if db_url.startswith("sqlite") and ":memory:" not in db_url:
        # Format: sqlite+aiosqlite:///path or sqlite:///path
        prefix_end = db_url.find(":///") + 4
        prefix = db_url[:prefix_end]
        path = db_url[prefix_end:]

        if not path.startswith("/"):
            clean_path = path.removeprefix("./")
            return f"{prefix}{project_root / clean_path}"

    return db_url


_project_root = get_project_root()

_env_file = _project_root / ".env"
if not _env_file.exists():
    _env_file = Path(".env")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_env_file),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database - SQLite file under ./data/ unless overridden (postgres via asyncpg also works)
    database_url: str = "sqlite+aiosqlite:///data/chathub.db"

    # Tokens
    # HS256 needs at least 32 bytes; override via SECRET_KEY outside development
    secret_key: str = "chathub-dev-secret-key-change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Link previews
    unfurl_timeout_seconds: float = 5.0
    unfurl_max_bytes: int = 1024 * 1024
    unfurl_user_agent: str = "chathub-link-preview/0.1"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    def __init__(self, **data):
        super().__init__(**data)
        resolved_db = resolve_database_path(self.database_url, _project_root)
        object.__setattr__(self, "database_url", resolved_db)


settings = Settings()
