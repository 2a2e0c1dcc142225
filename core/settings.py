# core/settings.py
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# -------------------------
# Load .env automatically
# -------------------------
def load_env():
    root = Path(__file__).resolve().parents[1]  # project root
    env_path = root / ".env"
    if not env_path.exists():
        return
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        k, v = line.split("=", 1)
        os.environ.setdefault(k.strip(), v.strip())


load_env()


@dataclass(frozen=True)
class Settings:
    max_criteria: int = 10
    consistency_threshold: float = 0.1
    default_project_name: str = "Generic Decision Project"
    log_level: str = "INFO"


_settings: Optional[Settings] = None


def _env_number(name: str, cast, default):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}.")


def get_settings() -> Settings:
    global _settings
    if _settings is not None:
        return _settings

    max_criteria = _env_number("MCDA_MAX_CRITERIA", int, Settings.max_criteria)
    if max_criteria < 1:
        raise RuntimeError("MCDA_MAX_CRITERIA must be at least 1.")

    _settings = Settings(
        max_criteria=max_criteria,
        consistency_threshold=_env_number(
            "MCDA_CONSISTENCY_THRESHOLD", float, Settings.consistency_threshold
        ),
        default_project_name=os.getenv("MCDA_PROJECT_NAME") or Settings.default_project_name,
        log_level=(os.getenv("MCDA_LOG_LEVEL") or Settings.log_level).upper(),
    )
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None


def configure_logging(settings: Optional[Settings] = None) -> None:
    cfg = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
