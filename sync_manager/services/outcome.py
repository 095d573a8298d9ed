# sync_manager/services/outcome.py
"""
Fournisseurs de résultat de synchro.

Le moteur appelle ``provider.generate(options)`` une seule fois, à la fin du job.
En production on branche un client de plateforme; pour la démo et les tests on
utilise le simulateur (graine fixe) ou un résultat figé.
"""

import random
import uuid
from datetime import timedelta
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from sync_manager.models.sync import (
    OPERATIONS_BY_SYNC_TYPE,
    LogEntry,
    LogStatus,
    PlatformId,
    SyncOptions,
    SyncOutcome,
    now_utc,
)

# (sku, nom) des produits concernés par la synchro
ProductRef = Tuple[str, str]
ScopeResolver = Callable[[SyncOptions], Sequence[ProductRef]]

ERROR_MESSAGES = [
    "API connection timeout",
    "Invalid price format",
    "Product not found in target platform",
    "Insufficient permissions",
    "Rate limit exceeded",
]


class OutcomeProvider(Protocol):
    def generate(self, options: SyncOptions) -> SyncOutcome: ...


def new_log_id(suffix: str = "") -> str:
    base = f"log-{uuid.uuid4().hex[:12]}"
    return f"{base}-{suffix}" if suffix else base


class FixedOutcomeProvider:
    """Retourne toujours le même résultat (tests, démos déterministes)."""

    def __init__(self, outcome: SyncOutcome) -> None:
        self.outcome = outcome
        self.calls: List[SyncOptions] = []

    def generate(self, options: SyncOptions) -> SyncOutcome:
        self.calls.append(options)
        return self.outcome


class SimulatedOutcomeProvider:
    """
    Simule les réponses des plateformes: 10-29 succès, 0-4 échecs.

    Chaque entrée est attribuée à une plateforme du job (tirage si plusieurs),
    et les compteurs par plateforme sont dérivés de ces entrées.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        scope: Optional[ScopeResolver] = None,
        min_success: int = 10,
        max_success: int = 29,
        max_failures: int = 4,
    ) -> None:
        self._rng = random.Random(seed)
        self._scope = scope
        self.min_success = min_success
        self.max_success = max_success
        self.max_failures = max_failures

    def _pick_product(self, products: Sequence[ProductRef]) -> ProductRef:
        if products:
            return self._rng.choice(list(products))
        n = self._rng.randrange(1000)
        return f"SKU{n:03d}", f"Product {self._rng.randrange(1000)}"

    def _entry(
        self,
        options: SyncOptions,
        platforms: List[PlatformId],
        products: Sequence[ProductRef],
        status: LogStatus,
        suffix: str,
    ) -> LogEntry:
        sku, name = self._pick_product(products)
        operations = OPERATIONS_BY_SYNC_TYPE[options.sync_type]
        return LogEntry(
            id=new_log_id(suffix),
            timestamp=now_utc() - timedelta(seconds=self._rng.uniform(0, 300)),
            operation=self._rng.choice(operations),
            product_sku=sku,
            product_name=name,
            platform=self._rng.choice(platforms),
            status=status,
            details=self._rng.choice(ERROR_MESSAGES) if status is LogStatus.ERROR else None,
        )

    def generate(self, options: SyncOptions) -> SyncOutcome:
        products = list(self._scope(options)) if self._scope else []
        # ordre stable pour que la graine donne toujours le même tirage
        platforms = sorted(options.platforms, key=lambda p: p.value)

        success = self._rng.randint(self.min_success, self.max_success)
        failed = self._rng.randint(0, self.max_failures)

        entries = [
            self._entry(options, platforms, products, LogStatus.SUCCESS, str(i))
            for i in range(success)
        ]
        entries += [
            self._entry(options, platforms, products, LogStatus.ERROR, f"err-{i}")
            for i in range(failed)
        ]

        per_platform: Dict[PlatformId, int] = {p: 0 for p in platforms}
        for entry in entries:
            if entry.status is LogStatus.SUCCESS and entry.platform is not None:
                per_platform[entry.platform] += 1

        return SyncOutcome(
            success_count=success,
            failure_count=failed,
            per_platform_success_counts=per_platform,
            log_entries=entries,
        )
