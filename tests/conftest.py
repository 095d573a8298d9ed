"""
Pytest configuration and shared fixtures.

Provides a manual scheduler that drives the sync engine tick by tick, log entry
and outcome factories, an in-memory catalog database and an API client.
"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from sync_manager.db import get_session
from sync_manager.deps import get_dashboard
from sync_manager.main import app
from sync_manager.models.sync import (
    LogEntry,
    LogOperation,
    LogStatus,
    PlatformId,
    SyncOptions,
    SyncOutcome,
)
from sync_manager.services.dashboard import DashboardController
from sync_manager.services.job_engine import SyncJobEngine
from sync_manager.services.outcome import FixedOutcomeProvider

T0 = datetime(2024, 7, 15, 14, 0, 0, tzinfo=timezone.utc)


# ==============================================================================
# Manual scheduler
# ==============================================================================


class ManualTimer:
    def __init__(self, interval: float, callback: Callable[[], None], due: float, seq: int) -> None:
        self.interval = interval
        self.callback = callback
        self.due = due
        self.seq = seq
        self.active = True

    def cancel(self) -> None:
        self.active = False


class ManualScheduler:
    """Deterministic scheduler: time only moves when a test calls advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: List[ManualTimer] = []
        self.fired = 0
        self._seq = itertools.count()

    def call_every(self, interval: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(interval, callback, self.now + interval, next(self._seq))
        self.timers.append(timer)
        return timer

    @property
    def active_timers(self) -> List[ManualTimer]:
        return [t for t in self.timers if t.active]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.timers if t.active and t.due <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self.now = timer.due
            timer.due += timer.interval
            self.fired += 1
            timer.callback()
        self.now = target


class SteppingClock:
    """Returns T0, T0+1s, T0+2s, ... on successive calls."""

    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value


# ==============================================================================
# Factories
# ==============================================================================

_ids = itertools.count(1)


def make_entry(
    status: LogStatus = LogStatus.SUCCESS,
    timestamp: Optional[datetime] = None,
    platform: Optional[PlatformId] = PlatformId.LOJA_INTEGRADA,
    sku: str = "SKU001",
    name: str = "Product 1",
    operation: LogOperation = LogOperation.INVENTORY,
    details: Optional[str] = None,
) -> LogEntry:
    return LogEntry(
        id=f"log-test-{next(_ids)}",
        timestamp=timestamp or T0,
        operation=operation,
        product_sku=sku,
        product_name=name,
        platform=platform,
        status=status,
        details=details,
    )


def make_outcome(
    success: int = 3,
    failed: int = 1,
    platform: PlatformId = PlatformId.LOJA_INTEGRADA,
    per_platform: Optional[dict] = None,
    finished_at: Optional[datetime] = None,
) -> SyncOutcome:
    entries = [make_entry(LogStatus.SUCCESS, platform=platform, sku=f"SKU{i:03d}") for i in range(success)]
    entries += [
        make_entry(LogStatus.ERROR, platform=platform, sku=f"ERR{i:03d}", details="Rate limit exceeded")
        for i in range(failed)
    ]
    return SyncOutcome(
        success_count=success,
        failure_count=failed,
        per_platform_success_counts=per_platform if per_platform is not None else {platform: success},
        log_entries=entries,
        finished_at=finished_at,
    )


def options(*platforms: PlatformId, sync_type: str = "all", selection: str = "all") -> SyncOptions:
    return SyncOptions(
        platforms=frozenset(platforms or (PlatformId.LOJA_INTEGRADA,)),
        sync_type=sync_type,
        product_selection=selection,
    )


# ==============================================================================
# Engine fixtures
# ==============================================================================


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def provider() -> FixedOutcomeProvider:
    return FixedOutcomeProvider(make_outcome(success=10, failed=2))


@pytest.fixture
def engine(provider, scheduler, clock) -> SyncJobEngine:
    return SyncJobEngine(provider, scheduler, duration_seconds=50, tick_seconds=1.0, progress_step=2, clock=clock)


# ==============================================================================
# API fixtures
# ==============================================================================


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(db_engine):
    with Session(db_engine) as session:
        yield session


@pytest.fixture
def dashboard(scheduler, provider) -> DashboardController:
    return DashboardController(scheduler, provider, duration_seconds=50, tick_seconds=1.0, progress_step=2)


@pytest.fixture
def client(db_engine, dashboard):
    def _session():
        with Session(db_engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_dashboard] = lambda: dashboard
    yield TestClient(app)
    app.dependency_overrides.clear()
