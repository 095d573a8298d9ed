# sync_manager/services/job_engine.py
"""
Moteur de job de synchro: un seul job actif, annulable, avec progression.

Cycle de vie: idle -> running -> (completed | cancelled).

Deux minuteries indépendantes tournent pendant un job:
- compte à rebours: -1 seconde par tick, bloqué à 0
- progression: +``progress_step`` % par tick, bloquée à 100

Elles sont censées arriver au bout ensemble mais peuvent dériver; seule la
progression à 100 % termine le job. Les deux minuteries sont arrêtées avant
l'appel au fournisseur de résultat, et plus aucune notification n'est émise
après un état terminal.

Politique de ré-entrance: ``start`` pendant un job en cours est refusé
(``JobAlreadyRunning``); le job en cours n'est pas touché.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Union

from pydantic import ValidationError

from sync_manager.models.sync import (
    JobStatus,
    LogEntry,
    LogOperation,
    LogStatus,
    ProgressEvent,
    SyncJob,
    SyncOptions,
    SyncOutcome,
    TerminalEvent,
    now_utc,
)
from sync_manager.services.outcome import OutcomeProvider, new_log_id
from sync_manager.services.scheduler import Scheduler, TimerHandle

log = logging.getLogger(__name__)

STOPPED_BY_USER_DETAILS = "Sync process manually stopped by user"
SYNC_PROCESS_NAME = "Sync Process"
NO_SKU = "N/A"

ProgressListener = Callable[[ProgressEvent], None]
TerminalListener = Callable[[TerminalEvent], None]


class SyncEngineError(Exception):
    """Erreur de base du moteur de synchro."""


class InvalidOptions(SyncEngineError):
    def __init__(self, message: str = "at least one platform must be selected") -> None:
        super().__init__(message)
        self.message = message


class JobAlreadyRunning(SyncEngineError):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"sync job {job_id} is already running")
        self.job_id = job_id


def synthetic_error_outcome(details: str, timestamp: datetime, *, cancelled: bool = False) -> SyncOutcome:
    """Résultat d'une seule entrée d'erreur (arrêt manuel ou fournisseur en échec)."""
    entry = LogEntry(
        id=new_log_id("stopped" if cancelled else "failed"),
        timestamp=timestamp,
        operation=LogOperation.ALL,
        product_sku=NO_SKU,
        product_name=SYNC_PROCESS_NAME,
        platform=None,
        status=LogStatus.ERROR,
        details=details,
    )
    return SyncOutcome(
        success_count=0,
        failure_count=1,
        log_entries=[entry],
        finished_at=timestamp,
        cancelled=cancelled,
    )


class SyncJobEngine:
    def __init__(
        self,
        provider: OutcomeProvider,
        scheduler: Scheduler,
        *,
        duration_seconds: int = 50,
        tick_seconds: float = 1.0,
        progress_step: int = 2,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        if duration_seconds < 1:
            raise ValueError("duration_seconds must be >= 1")
        if not 1 <= progress_step <= 100:
            raise ValueError("progress_step must be between 1 and 100")

        self._provider = provider
        self._scheduler = scheduler
        self.duration_seconds = duration_seconds
        self.tick_seconds = tick_seconds
        self.progress_step = progress_step
        self._clock = clock

        self._job: Optional[SyncJob] = None
        self._countdown_timer: Optional[TimerHandle] = None
        self._progress_timer: Optional[TimerHandle] = None
        self._progress_listeners: List[ProgressListener] = []
        self._terminal_listeners: List[TerminalListener] = []

    # ---------------------------------------------------------
    #  Lecture
    # ---------------------------------------------------------

    @property
    def status(self) -> JobStatus:
        return self._job.status if self._job else JobStatus.IDLE

    @property
    def is_running(self) -> bool:
        return self.status is JobStatus.RUNNING

    @property
    def current_job(self) -> Optional[SyncJob]:
        """Copie du job courant (ou du dernier job terminé)."""
        return self._job.model_copy(deep=True) if self._job else None

    @property
    def has_active_timers(self) -> bool:
        return any(t is not None and t.active for t in (self._countdown_timer, self._progress_timer))

    # ---------------------------------------------------------
    #  Abonnements
    # ---------------------------------------------------------

    def subscribe_progress(self, listener: ProgressListener) -> Callable[[], None]:
        self._progress_listeners.append(listener)
        return lambda: self._unsubscribe(self._progress_listeners, listener)

    def subscribe_terminal(self, listener: TerminalListener) -> Callable[[], None]:
        self._terminal_listeners.append(listener)
        return lambda: self._unsubscribe(self._terminal_listeners, listener)

    @staticmethod
    def _unsubscribe(listeners: List[Any], listener: Any) -> None:
        if listener in listeners:
            listeners.remove(listener)

    # ---------------------------------------------------------
    #  Commandes
    # ---------------------------------------------------------

    def start(self, options: Union[SyncOptions, Mapping[str, Any]]) -> SyncJob:
        options = self._validate(options)

        if self._job is not None and self._job.status is JobStatus.RUNNING:
            raise JobAlreadyRunning(self._job.id)

        self._job = SyncJob(
            id=f"job-{uuid.uuid4().hex[:12]}",
            status=JobStatus.RUNNING,
            progress_percent=0,
            seconds_remaining=self.duration_seconds,
            options=options,
            started_at=self._clock(),
        )
        self._countdown_timer = self._scheduler.call_every(self.tick_seconds, self._on_countdown_tick)
        self._progress_timer = self._scheduler.call_every(self.tick_seconds, self._on_progress_tick)

        log.info(
            "[SYNC] Début job %s: plateformes=%s type=%s produits=%s",
            self._job.id,
            sorted(p.value for p in options.platforms),
            options.sync_type.value,
            options.product_selection.value,
        )
        return self.current_job

    def cancel(self) -> Optional[SyncJob]:
        """Arrête le job en cours. Sans effet (retourne None) si aucun job ne tourne."""
        job = self._job
        if job is None or job.status is not JobStatus.RUNNING:
            return None

        self._stop_timers()
        finished_at = self._clock()
        outcome = synthetic_error_outcome(STOPPED_BY_USER_DETAILS, finished_at, cancelled=True)
        self._finish(JobStatus.CANCELLED, outcome, finished_at)
        log.info("[SYNC] Job %s arrêté par l'utilisateur à %s%%", job.id, job.progress_percent)
        return self.current_job

    def shutdown(self) -> None:
        """Libère les minuteries (arrêt de l'application); aucune notification n'est émise."""
        self._stop_timers()
        if self._job is not None and self._job.status is JobStatus.RUNNING:
            self._job.status = JobStatus.CANCELLED
            self._job.finished_at = self._clock()
            log.info("[SYNC] Job %s interrompu par l'arrêt du service", self._job.id)
        self._progress_listeners.clear()
        self._terminal_listeners.clear()

    # ---------------------------------------------------------
    #  Interne
    # ---------------------------------------------------------

    @staticmethod
    def _validate(options: Union[SyncOptions, Mapping[str, Any]]) -> SyncOptions:
        if not isinstance(options, SyncOptions):
            try:
                options = SyncOptions.model_validate(options)
            except ValidationError as e:
                raise InvalidOptions(str(e)) from e
        # model_construct() contourne la validation
        if not options.platforms:
            raise InvalidOptions()
        return options

    def _stop_timers(self) -> None:
        for timer in (self._countdown_timer, self._progress_timer):
            if timer is not None:
                timer.cancel()
        self._countdown_timer = None
        self._progress_timer = None

    def _on_countdown_tick(self) -> None:
        job = self._job
        if job is None or job.status is not JobStatus.RUNNING:
            return
        job.seconds_remaining = max(0, job.seconds_remaining - 1)
        if job.seconds_remaining == 0 and self._countdown_timer is not None:
            self._countdown_timer.cancel()
            self._countdown_timer = None
        self._emit_progress(job)

    def _on_progress_tick(self) -> None:
        job = self._job
        if job is None or job.status is not JobStatus.RUNNING:
            return
        job.progress_percent = min(100, job.progress_percent + self.progress_step)
        self._emit_progress(job)
        # un abonné a pu annuler le job pendant la notification
        if job.progress_percent >= 100 and job.status is JobStatus.RUNNING:
            self._complete(job)

    def _complete(self, job: SyncJob) -> None:
        self._stop_timers()
        try:
            outcome = self._provider.generate(job.options)
        except Exception as e:
            log.exception("[SYNC] Fournisseur de résultat en échec pour le job %s", job.id)
            outcome = synthetic_error_outcome(f"Outcome generation failed: {e}", self._clock())

        finished_at = self._clock()
        if outcome.finished_at is None:
            outcome = outcome.model_copy(update={"finished_at": finished_at})
        self._finish(JobStatus.COMPLETED, outcome, finished_at)
        log.info(
            "[SYNC] Job %s terminé: %s succès, %s échecs",
            job.id,
            outcome.success_count,
            outcome.failure_count,
        )

    def _finish(self, status: JobStatus, outcome: SyncOutcome, finished_at: datetime) -> None:
        job = self._job
        job.status = status
        job.outcome = outcome
        job.finished_at = finished_at
        event = TerminalEvent(job_id=job.id, status=status, options=job.options, outcome=outcome)
        for listener in list(self._terminal_listeners):
            try:
                listener(event)
            except Exception:
                log.exception("[SYNC] Abonné terminal en échec (job %s)", job.id)

    def _emit_progress(self, job: SyncJob) -> None:
        event = ProgressEvent(
            job_id=job.id,
            progress_percent=job.progress_percent,
            seconds_remaining=job.seconds_remaining,
            status=job.status,
        )
        for listener in list(self._progress_listeners):
            try:
                listener(event)
            except Exception:
                log.exception("[SYNC] Abonné progression en échec (job %s)", job.id)
