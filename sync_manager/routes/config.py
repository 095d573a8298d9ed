# sync_manager/routes/config.py
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from sync_manager.config import Settings, get_settings

router = APIRouter(prefix="/config", tags=["config"])


class PlatformConfig(BaseModel):
    configured: bool
    values: Dict[str, Optional[str]]


class ConfigView(BaseModel):
    sync_frequency: str
    sync_error_threshold: int
    sync_duration_seconds: int
    credentials: Dict[str, PlatformConfig]


@router.get("", response_model=ConfigView, summary="Préférences de synchro et identifiants (masqués)")
def read_config(settings: Settings = Depends(get_settings)) -> ConfigView:
    return ConfigView(
        sync_frequency=settings.sync_frequency,
        sync_error_threshold=settings.sync_error_threshold,
        sync_duration_seconds=settings.sync_duration_seconds,
        credentials={
            name: PlatformConfig(configured=creds.configured, values=creds.masked())
            for name, creds in settings.credentials.items()
        },
    )
