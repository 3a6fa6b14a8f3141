import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def load_env() -> None:
    """Load .env from the working directory if present.
    Values already set in the process environment win.
    """
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise SystemExit(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    db_path: Path = Path("data/faculty.db")
    redis_url: Optional[str] = None
    cache_capacity: int = 100
    cache_ttl: int = 300
    rankings_cache_ttl: int = 300
    scopus_api_key: Optional[str] = None
    log_level: str = "INFO"
    enrich_workers: int = 3

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_path=Path(os.getenv("FACULTYRANK_DB", "data/faculty.db")),
            redis_url=os.getenv("REDIS_URL") or None,
            cache_capacity=_int_env("CACHE_CAPACITY", 100),
            cache_ttl=_int_env("CACHE_TTL", 300),
            rankings_cache_ttl=_int_env("RANKINGS_CACHE_TTL", 300),
            scopus_api_key=os.getenv("SCOPUS_API_KEY") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            enrich_workers=_int_env("ENRICH_WORKERS", 3),
        )
