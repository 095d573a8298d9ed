from .sync import (
    JobStatus,
    LogEntry,
    LogOperation,
    LogStatus,
    Metrics,
    PlatformId,
    ProductSelection,
    ProgressEvent,
    SyncJob,
    SyncOptions,
    SyncOutcome,
    SyncType,
    TerminalEvent,
)
from .product import Product, ProductCreate, ProductRead, ProductSyncStatus, ProductUpdate

__all__ = [
    "JobStatus", "LogEntry", "LogOperation", "LogStatus", "Metrics", "PlatformId",
    "ProductSelection", "ProgressEvent", "SyncJob", "SyncOptions", "SyncOutcome",
    "SyncType", "TerminalEvent",
    "Product", "ProductCreate", "ProductRead", "ProductSyncStatus", "ProductUpdate",
]
