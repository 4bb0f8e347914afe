from __future__ import annotations

"""Runtime settings for the GDP Insights API.

Values come from environment variables (a local ``.env`` is loaded by the API
entrypoint). Every key has a development default so the service boots with an
in-memory store and no LLM credentials.
"""

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional


DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:9002"


def _env_int(env: Mapping[str, str], name: str, default: int, *, lo: int = 1, hi: Optional[int] = None) -> int:
    raw = env.get(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value < lo:
        return default
    if hi is not None and value > hi:
        return hi
    return value


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    store_impl: str = "memory"
    records_file: Optional[str] = None
    mongo_url: str = "mongodb://localhost:27017"
    mongo_db: str = "gdp_insights"
    collection: str = "gdp_records"
    page_size: int = 10
    redis_url: Optional[str] = None
    model_provider: Optional[str] = None
    llm_model: Optional[str] = None
    llm_temperature: float = 0.2
    cors_origins: List[str] = field(default_factory=lambda: DEFAULT_CORS_ORIGINS.split(","))

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        origins = env.get("GDP_CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
        return Settings(
            store_impl=(env.get("GDP_STORE_IMPL") or "memory").strip().lower(),
            records_file=env.get("GDP_RECORDS_FILE") or None,
            mongo_url=env.get("MONGO_URL", "mongodb://localhost:27017"),
            mongo_db=env.get("MONGO_DB", "gdp_insights"),
            collection=env.get("GDP_COLLECTION", "gdp_records"),
            page_size=_env_int(env, "GDP_PAGE_SIZE", 10, hi=100),
            redis_url=env.get("REDIS_URL") or None,
            model_provider=(env.get("GDP_MODEL_PROVIDER") or "").strip().lower() or None,
            llm_model=env.get("GDP_LLM_MODEL") or None,
            llm_temperature=_env_float(env, "GDP_LLM_TEMPERATURE", 0.2),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )
