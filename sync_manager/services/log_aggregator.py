# sync_manager/services/log_aggregator.py
"""
Transforme le résultat d'un job en entrées de journal et en métriques cumulées.

``apply_outcome`` est un réducteur pur; ``LogAggregator`` garde l'état courant
(en mémoire seulement, rien n'est persisté).
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from sync_manager.models.sync import LogEntry, LogStatus, Metrics, PlatformId, SyncOutcome

log = logging.getLogger(__name__)


def _platform_credit(outcome: SyncOutcome, platforms: List[PlatformId]) -> Dict[PlatformId, int]:
    """
    Succès crédités à chaque plateforme du job.

    Les plateformes hors du job ne sont jamais créditées. Si le fournisseur
    n'a pas ventilé un job mono-plateforme, tout le succès va à celle-ci.
    """
    split = outcome.per_platform_success_counts
    if len(platforms) == 1 and platforms[0] not in split:
        return {platforms[0]: outcome.success_count}
    return {p: split.get(p, 0) for p in platforms}


def apply_outcome(
    metrics: Metrics,
    logs: List[LogEntry],
    outcome: SyncOutcome,
    platforms: Iterable[PlatformId],
) -> Tuple[Metrics, List[LogEntry]]:
    """Retourne (nouvelles métriques, nouveau journal) sans modifier les entrées."""
    new_logs = list(outcome.log_entries) + list(logs)

    per_platform = dict(metrics.per_platform_counts)
    for platform, credit in _platform_credit(outcome, sorted(set(platforms), key=lambda p: p.value)).items():
        per_platform[platform] = per_platform.get(platform, 0) + credit

    last_sync_at = metrics.last_sync_at
    if outcome.cancelled:
        # un arrêt ne compte que s'il est l'entrée la plus récente
        newest_prior = max((e.timestamp for e in logs), default=None)
        stopped_at = max((e.timestamp for e in outcome.log_entries), default=outcome.finished_at)
        if stopped_at is not None and (newest_prior is None or stopped_at >= newest_prior):
            last_sync_at = stopped_at
    elif outcome.finished_at is not None:
        last_sync_at = outcome.finished_at

    new_metrics = Metrics(
        success_count=metrics.success_count + outcome.success_count,
        failure_count=metrics.failure_count + outcome.failure_count,
        per_platform_counts=per_platform,
        last_sync_at=last_sync_at,
    )
    return new_metrics, new_logs


class LogAggregator:
    def __init__(self) -> None:
        self._metrics = Metrics()
        self._logs: List[LogEntry] = []

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    @property
    def logs(self) -> List[LogEntry]:
        """Journal, plus récent en premier (copie)."""
        return list(self._logs)

    def get(self, log_id: str) -> Optional[LogEntry]:
        return next((e for e in self._logs if e.id == log_id), None)

    def record_outcome(
        self, outcome: SyncOutcome, platforms: Iterable[PlatformId]
    ) -> Tuple[Metrics, List[LogEntry]]:
        platforms = list(platforms)
        self._metrics, self._logs = apply_outcome(self._metrics, self._logs, outcome, platforms)

        recorded_success = sum(1 for e in outcome.log_entries if e.status is LogStatus.SUCCESS)
        recorded_errors = len(outcome.log_entries) - recorded_success
        if (recorded_success, recorded_errors) != (outcome.success_count, outcome.failure_count):
            log.warning(
                "[LOGS] Compteurs (%s/%s) différents des entrées (%s/%s)",
                outcome.success_count,
                outcome.failure_count,
                recorded_success,
                recorded_errors,
            )

        log.info(
            "[LOGS] %s entrées ajoutées (total %s)",
            len(outcome.log_entries),
            len(self._logs),
        )
        return self._metrics, self.logs

    def clear(self) -> None:
        self._metrics = Metrics()
        self._logs = []
