import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv, find_dotenv

from app.errors import ConfigurationError

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_MODELS = ("gemini-2.5-flash", "gemini-2.0-flash", "gemini-1.5-flash")
TRANSPORTS = ("sdk", "rest")


@dataclass(frozen=True)
class Settings:
    api_key: str
    models: Tuple[str, ...] = DEFAULT_MODELS
    transport: str = "sdk"
    request_timeout: float = 30.0
    max_upload_bytes: int = 5 * 1024 * 1024
    image_max_width: int = 1024
    image_quality: int = 80
    usage_log_dir: Path = BASE_DIR / "logs"
    persona_file: Optional[Path] = None
    knowledge_file: Optional[Path] = None
    cors_origins: Tuple[str, ...] = ("*",)
    log_level: str = "INFO"


def _split(value: str) -> Tuple[str, ...]:
    return tuple(v.strip() for v in value.split(",") if v.strip())


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}")


def _path(env: Mapping[str, str], key: str) -> Optional[Path]:
    raw = env.get(key)
    return Path(raw) if raw else None


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment (or the given mapping).
    Raises ConfigurationError when the API key or the model list is missing.
    """
    if env is None:
        load_dotenv(find_dotenv())
        env = os.environ

    api_key = env.get("GEMINI_API_KEY") or env.get("LLM_API_KEY")
    if not api_key:
        raise ConfigurationError("Set GEMINI_API_KEY (or LLM_API_KEY) in your .env")

    models = _split(env["GEMINI_MODELS"]) if "GEMINI_MODELS" in env else DEFAULT_MODELS
    if not models:
        raise ConfigurationError("GEMINI_MODELS must list at least one model")

    transport = (env.get("GEMINI_TRANSPORT") or "sdk").lower()
    if transport not in TRANSPORTS:
        raise ConfigurationError(f"GEMINI_TRANSPORT must be one of {TRANSPORTS}")

    try:
        timeout = float(env.get("REQUEST_TIMEOUT_SEC") or 30)
    except ValueError:
        raise ConfigurationError("REQUEST_TIMEOUT_SEC must be a number")

    log_dir = _path(env, "USAGE_LOG_DIR") or BASE_DIR / "logs"

    return Settings(
        api_key=api_key,
        models=models,
        transport=transport,
        request_timeout=timeout,
        max_upload_bytes=_int(env, "MAX_UPLOAD_BYTES", 5 * 1024 * 1024),
        image_max_width=_int(env, "IMAGE_MAX_WIDTH", 1024),
        image_quality=_int(env, "IMAGE_QUALITY", 80),
        usage_log_dir=log_dir,
        persona_file=_path(env, "PERSONA_FILE"),
        knowledge_file=_path(env, "KNOWLEDGE_FILE"),
        cors_origins=_split(env.get("CORS_ORIGINS") or "*"),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )


def cors_origins_from_env() -> Tuple[str, ...]:
    """CORS is wired before startup, so it reads the environment on its own."""
    load_dotenv(find_dotenv())
    return _split(os.getenv("CORS_ORIGINS") or "*")
