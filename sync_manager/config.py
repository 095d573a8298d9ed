# sync_manager/config.py

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Optional

SYNC_FREQUENCIES = ("hourly", "daily", "weekly", "manual")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} doit être un entier (reçu: {raw!r})")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} doit être un nombre (reçu: {raw!r})")


def _mask(secret: Optional[str]) -> Optional[str]:
    if not secret:
        return secret
    if len(secret) <= 4:
        return "***"
    return f"{secret[:2]}***{secret[-2:]}"


@dataclass(frozen=True)
class PlatformCredentials:
    """Identifiants d'une plateforme (jamais persistés, lus depuis l'env)."""
    platform: str
    values: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def configured(self) -> bool:
        return all(self.values.values())

    def masked(self) -> Dict[str, Optional[str]]:
        return {k: _mask(v) for k, v in self.values.items()}


@dataclass(frozen=True)
class Settings:
    database_url: str
    db_pool_size: int
    db_max_overflow: int
    cors_origins: List[str]

    # moteur de synchro
    sync_duration_seconds: int
    sync_tick_seconds: float
    sync_progress_step: int
    sync_simulation_seed: Optional[int]

    # préférences (panneau de config)
    sync_frequency: str
    sync_error_threshold: int

    credentials: Dict[str, PlatformCredentials]


def load_settings() -> Settings:
    origins_env = os.getenv("CORS_ORIGINS", "")
    origins = [o.strip() for o in origins_env.split(",") if o.strip()] or ["*"]

    duration = _int_env("SYNC_DURATION_SECONDS", 50)
    tick = _float_env("SYNC_TICK_SECONDS", 1.0)
    step = _int_env("SYNC_PROGRESS_STEP", 2)
    if duration < 1 or tick <= 0 or not 1 <= step <= 100:
        raise RuntimeError(
            "SYNC_DURATION_SECONDS >= 1, SYNC_TICK_SECONDS > 0 et 1 <= SYNC_PROGRESS_STEP <= 100 requis."
        )

    seed_raw = os.getenv("SYNC_SIMULATION_SEED", "").strip()
    seed = _int_env("SYNC_SIMULATION_SEED", 0) if seed_raw else None

    frequency = os.getenv("SYNC_FREQUENCY", "daily").strip().lower()
    if frequency not in SYNC_FREQUENCIES:
        raise RuntimeError(f"SYNC_FREQUENCY inconnue: {frequency!r}")

    credentials = {
        "jueri": PlatformCredentials(
            "jueri",
            {
                "username": os.getenv("JUERI_USERNAME"),
                "password": os.getenv("JUERI_PASSWORD"),
            },
        ),
        "loja-integrada": PlatformCredentials(
            "loja-integrada",
            {
                "chave_api": os.getenv("LOJA_INTEGRADA_API_KEY"),
                "chave_aplicacao": os.getenv("LOJA_INTEGRADA_APP_KEY"),
            },
        ),
        "woocommerce": PlatformCredentials(
            "woocommerce",
            {
                "url_base": os.getenv("WOOCOMMERCE_URL"),
                "consumer_key": os.getenv("WOOCOMMERCE_CONSUMER_KEY"),
                "consumer_secret": os.getenv("WOOCOMMERCE_CONSUMER_SECRET"),
            },
        ),
    }

    return Settings(
        database_url=os.getenv("DATABASE_URL", "").strip(),
        db_pool_size=_int_env("DB_POOL_SIZE", 5),
        db_max_overflow=_int_env("DB_MAX_OVERFLOW", 10),
        cors_origins=origins,
        sync_duration_seconds=duration,
        sync_tick_seconds=tick,
        sync_progress_step=step,
        sync_simulation_seed=seed,
        sync_frequency=frequency,
        sync_error_threshold=_int_env("SYNC_ERROR_THRESHOLD", 10),
        credentials=credentials,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
