import os
from dataclasses import asdict, dataclass, fields
from typing import Dict, Optional


@dataclass
class BaseConfig:
    DEBUG: bool = False
    TESTING: bool = False
    SECRET_KEY: str = "change-me"
    CORS_ORIGINS: str = "http://localhost:5173"

    GEMINI_API_KEY: Optional[str] = None
    LLM_MODEL: str = "gemini-2.0-flash"
    GENERATION_TIMEOUT_SECONDS: float = 45.0
    GENERATION_MAX_ATTEMPTS: int = 1
    GENERATION_DEADLINE_SECONDS: float = 0.0  # 0 derives the deadline from timeout and attempts
    STATEMENT_MAX_LENGTH: int = 350
    MERGE_MAX_LENGTH: int = 500
    REFINEMENT_MIN_ANSWERS: int = 2
    REFINEMENT_MAX_LOOPBACKS: int = 2
    REFINEMENT_VERIFY_FACTS: bool = True


@dataclass
class DevelopmentConfig(BaseConfig):
    DEBUG: bool = True


@dataclass
class TestingConfig(BaseConfig):
    TESTING: bool = True
    GEMINI_API_KEY: Optional[str] = "test-key"
    GENERATION_TIMEOUT_SECONDS: float = 5.0


CONFIG_MAP = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": BaseConfig
}


def _coerce(raw: str, current: object) -> object:
    if isinstance(current, bool):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw


def load_config(name: str) -> Dict[str, object]:
    """Resolve a named config, letting same-named environment variables override it."""
    config_class = CONFIG_MAP.get(name, BaseConfig)
    config = config_class()
    for item in fields(config):
        raw = os.getenv(item.name)
        if raw is not None:
            setattr(config, item.name, _coerce(raw, getattr(config, item.name)))
    return asdict(config)
