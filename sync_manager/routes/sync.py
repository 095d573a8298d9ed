# sync_manager/routes/sync.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from sync_manager.deps import get_dashboard
from sync_manager.models.sync import SyncJob, SyncOptions
from sync_manager.services.dashboard import DashboardController, DashboardSnapshot
from sync_manager.services.job_engine import InvalidOptions, JobAlreadyRunning

router = APIRouter(prefix="/sync", tags=["sync"])
log = logging.getLogger("uvicorn.error")

DashboardDep = Depends(get_dashboard)


# async: le moteur et ses minuteries vivent sur la boucle asyncio
@router.post("", response_model=SyncJob, status_code=202, summary="Lancer une synchronisation")
async def start_sync(options: SyncOptions, dashboard: DashboardController = DashboardDep) -> SyncJob:
    try:
        return dashboard.start_sync(options)
    except InvalidOptions as e:
        raise HTTPException(status_code=422, detail=e.message)
    except JobAlreadyRunning as e:
        log.warning("⚠️ /sync refusé: job %s déjà en cours", e.job_id)
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/cancel", response_model=Optional[SyncJob], summary="Arrêter la synchronisation en cours")
async def cancel_sync(dashboard: DashboardController = DashboardDep) -> Optional[SyncJob]:
    return dashboard.cancel_sync()


@router.get("/status", response_model=Optional[SyncJob], summary="Job courant (ou dernier job)")
async def sync_status(dashboard: DashboardController = DashboardDep) -> Optional[SyncJob]:
    return dashboard.engine.current_job


@router.get("/metrics", response_model=DashboardSnapshot, summary="Métriques cumulées + progression")
async def sync_metrics(dashboard: DashboardController = DashboardDep) -> DashboardSnapshot:
    return dashboard.snapshot()
