# sync_manager/services/dashboard.py
"""
Câblage du tableau de bord: moteur de synchro -> journal/métriques -> vues.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from sync_manager.config import Settings
from sync_manager.models.product import ProductRead
from sync_manager.models.sync import (
    JobStatus,
    Metrics,
    PlatformId,
    ProductSelection,
    ProgressEvent,
    SyncJob,
    SyncOptions,
    TerminalEvent,
)
from sync_manager.services.explorer import ASC, SortSpec, TableExplorer
from sync_manager.services.job_engine import SyncJobEngine
from sync_manager.services.log_aggregator import LogAggregator
from sync_manager.services.outcome import OutcomeProvider, ProductRef, SimulatedOutcomeProvider
from sync_manager.services.scheduler import AsyncioScheduler, Scheduler
from sync_manager.services.selection import SelectionChange

log = logging.getLogger(__name__)


class DashboardSnapshot(BaseModel):
    success_count: int
    failure_count: int
    success_rate: int
    failure_rate: int
    per_platform_counts: Dict[PlatformId, int]
    last_sync_at: Optional[datetime] = None
    status: JobStatus
    job_id: Optional[str] = None
    progress_percent: int = 0
    seconds_remaining: int = 0
    selected_products: int = 0


class DashboardController:
    def __init__(
        self,
        scheduler: Scheduler,
        provider: Optional[OutcomeProvider] = None,
        *,
        duration_seconds: int = 50,
        tick_seconds: float = 1.0,
        progress_step: int = 2,
        seed: Optional[int] = None,
    ) -> None:
        self.aggregator = LogAggregator()
        self.products: TableExplorer[ProductRead] = TableExplorer(sort_spec=SortSpec("name", ASC))
        self.selected_product_count = 0
        self.last_progress: Optional[ProgressEvent] = None

        self.provider = provider or SimulatedOutcomeProvider(seed=seed, scope=self.products_in_scope)
        self.engine = SyncJobEngine(
            self.provider,
            scheduler,
            duration_seconds=duration_seconds,
            tick_seconds=tick_seconds,
            progress_step=progress_step,
        )
        self.engine.subscribe_progress(self._on_progress)
        self.engine.subscribe_terminal(self._on_terminal)
        self.products.selection.subscribe(self._on_selection)

    @classmethod
    def from_settings(cls, settings: Settings, scheduler: Optional[Scheduler] = None) -> "DashboardController":
        return cls(
            scheduler or AsyncioScheduler(),
            duration_seconds=settings.sync_duration_seconds,
            tick_seconds=settings.sync_tick_seconds,
            progress_step=settings.sync_progress_step,
            seed=settings.sync_simulation_seed,
        )

    # ---------------------------------------------------------
    #  Synchro
    # ---------------------------------------------------------

    def start_sync(self, options: SyncOptions) -> SyncJob:
        self.last_progress = None
        return self.engine.start(options)

    def cancel_sync(self) -> Optional[SyncJob]:
        return self.engine.cancel()

    def products_in_scope(self, options: SyncOptions) -> List[ProductRef]:
        if options.product_selection is ProductSelection.SELECTED:
            records: Sequence[ProductRead] = self.products.selected_records()
        elif options.product_selection is ProductSelection.FILTERED:
            records = self.products.view
        else:
            records = self.products.records
        return [(p.sku, p.name) for p in records]

    def _on_progress(self, event: ProgressEvent) -> None:
        self.last_progress = event

    def _on_terminal(self, event: TerminalEvent) -> None:
        self.aggregator.record_outcome(event.outcome, event.options.platforms)

    def _on_selection(self, change: SelectionChange) -> None:
        self.selected_product_count = change.count

    # ---------------------------------------------------------
    #  Lecture
    # ---------------------------------------------------------

    @property
    def metrics(self) -> Metrics:
        return self.aggregator.metrics

    def snapshot(self) -> DashboardSnapshot:
        metrics = self.metrics
        job = self.engine.current_job
        return DashboardSnapshot(
            success_count=metrics.success_count,
            failure_count=metrics.failure_count,
            success_rate=metrics.success_rate,
            failure_rate=metrics.failure_rate,
            per_platform_counts=metrics.per_platform_counts,
            last_sync_at=metrics.last_sync_at,
            status=self.engine.status,
            job_id=job.id if job else None,
            progress_percent=job.progress_percent if job else 0,
            seconds_remaining=job.seconds_remaining if job else 0,
            selected_products=self.selected_product_count,
        )

    def load_products(self, products: Sequence[ProductRead]) -> None:
        self.products.set_records(products)

    def shutdown(self) -> None:
        log.info("[SYNC] Arrêt du tableau de bord")
        self.engine.shutdown()
