from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


# ─────────────────────────────────────────
# ENUMS
# ─────────────────────────────────────────

class PlatformId(str, Enum):
    LOJA_INTEGRADA = "loja-integrada"
    WOOCOMMERCE = "woocommerce"

    @property
    def label(self) -> str:
        return PLATFORM_LABELS[self]


PLATFORM_LABELS: Dict[PlatformId, str] = {
    PlatformId.LOJA_INTEGRADA: "Loja Integrada",
    PlatformId.WOOCOMMERCE: "WooCommerce",
}
ALL_PLATFORMS_LABEL = "All Platforms"


class SyncType(str, Enum):
    INVENTORY = "inventory"
    PRICING = "pricing"
    ALL = "all"


class ProductSelection(str, Enum):
    ALL = "all"
    FILTERED = "filtered"
    SELECTED = "selected"


class JobStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.CANCELLED)


class LogOperation(str, Enum):
    INVENTORY = "inventory"
    PRICE = "price"
    ALL = "all"


class LogStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


# opérations journalisées pour chaque type de synchro
OPERATIONS_BY_SYNC_TYPE: Dict[SyncType, List[LogOperation]] = {
    SyncType.INVENTORY: [LogOperation.INVENTORY],
    SyncType.PRICING: [LogOperation.PRICE],
    SyncType.ALL: [LogOperation.INVENTORY, LogOperation.PRICE, LogOperation.ALL],
}


# ─────────────────────────────────────────
# OPTIONS / JOB
# ─────────────────────────────────────────

class SyncOptions(BaseModel):
    """Paramètres d'une synchro, figés au démarrage du job."""

    model_config = ConfigDict(frozen=True)

    platforms: FrozenSet[PlatformId]
    sync_type: SyncType = SyncType.ALL
    product_selection: ProductSelection = ProductSelection.ALL

    @field_validator("platforms")
    @classmethod
    def _platforms_not_empty(cls, value: FrozenSet[PlatformId]) -> FrozenSet[PlatformId]:
        if not value:
            raise ValueError("at least one platform must be selected")
        return value


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    operation: LogOperation
    product_sku: str
    product_name: str
    # None = toutes les plateformes (ex: arrêt manuel)
    platform: Optional[PlatformId] = None
    status: LogStatus
    details: Optional[str] = None

    @property
    def platform_label(self) -> str:
        return self.platform.label if self.platform else ALL_PLATFORMS_LABEL


class SyncOutcome(BaseModel):
    """Résultat d'un job, produit une seule fois à la fin."""

    model_config = ConfigDict(frozen=True)

    success_count: int = Field(default=0, ge=0)
    failure_count: int = Field(default=0, ge=0)
    per_platform_success_counts: Dict[PlatformId, int] = Field(default_factory=dict)
    log_entries: List[LogEntry] = Field(default_factory=list)
    finished_at: Optional[datetime] = None
    cancelled: bool = False


class SyncJob(BaseModel):
    id: str
    status: JobStatus = JobStatus.RUNNING
    progress_percent: int = Field(default=0, ge=0, le=100)
    seconds_remaining: int = Field(default=0, ge=0)
    options: SyncOptions
    started_at: datetime = Field(default_factory=now_utc)
    finished_at: Optional[datetime] = None
    outcome: Optional[SyncOutcome] = None


class ProgressEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    job_id: str
    progress_percent: int
    seconds_remaining: int
    status: JobStatus


class TerminalEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    job_id: str
    status: JobStatus
    options: SyncOptions
    outcome: SyncOutcome


# ─────────────────────────────────────────
# METRIQUES
# ─────────────────────────────────────────

class Metrics(BaseModel):
    """Totaux cumulés sur tous les jobs (jamais remis à zéro par un job)."""

    model_config = ConfigDict(frozen=True)

    success_count: int = 0
    failure_count: int = 0
    per_platform_counts: Dict[PlatformId, int] = Field(
        default_factory=lambda: {p: 0 for p in PlatformId}
    )
    last_sync_at: Optional[datetime] = None

    @property
    def total_count(self) -> int:
        return self.success_count + self.failure_count

    @property
    def success_rate(self) -> int:
        if not self.total_count:
            return 0
        return round(self.success_count / self.total_count * 100)

    @property
    def failure_rate(self) -> int:
        if not self.total_count:
            return 0
        return round(self.failure_count / self.total_count * 100)
