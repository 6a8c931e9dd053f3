import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def load_env() -> None:
    """Load .env from the working directory if present."""
    env_path = Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    db_path: Path
    log_level: str
    log_dir: Path
    log_to_file: bool
    fetch_timeout: float


def get_settings() -> Settings:
    """Read settings from the environment, after loading .env if present."""
    load_env()
    return Settings(
        db_path=Path(os.getenv("JOBTRACKER_DB", "data/jobs.db")),
        log_level=os.getenv("JOBTRACKER_LOG_LEVEL", "INFO").upper(),
        log_dir=Path(os.getenv("JOBTRACKER_LOG_DIR", "logs")),
        log_to_file=_env_flag("JOBTRACKER_LOG_FILE", True),
        fetch_timeout=_env_float("JOBTRACKER_FETCH_TIMEOUT", 15.0),
    )
