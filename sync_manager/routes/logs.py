# sync_manager/routes/logs.py
from datetime import date, datetime
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from sync_manager.deps import get_dashboard
from sync_manager.models.sync import LogEntry
from sync_manager.services.dashboard import DashboardController
from sync_manager.services.explorer import (
    ASC,
    DESC,
    DateRange,
    Equals,
    FilterSpec,
    Search,
    SortSpec,
    compute_view,
)
from sync_manager.services.log_export import export_filename, logs_to_csv

router = APIRouter(prefix="/logs", tags=["logs"])

DashboardDep = Depends(get_dashboard)

LOG_SORT_FIELDS = {"timestamp", "operation", "product_sku", "product_name", "platform", "status"}


def log_query(
    search: str = Query("", description="SKU ou nom du produit"),
    platform: Optional[str] = Query(None, description="loja-integrada | woocommerce | all-platforms"),
    status: Optional[str] = Query(None, description="success | error | all-statuses"),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    sort: Optional[str] = Query(None, description="champ de tri"),
    direction: str = Query(ASC, pattern=f"^({ASC}|{DESC})$"),
) -> Tuple[FilterSpec, Optional[SortSpec]]:
    if sort is not None and sort not in LOG_SORT_FIELDS:
        raise HTTPException(status_code=422, detail=f"Champ de tri inconnu: {sort}")

    filter_spec: FilterSpec = {
        "product_sku": Search(search, fields=("product_sku", "product_name")),
        "platform": Equals(platform),
        "status": Equals(status),
        "timestamp": DateRange(date_from, date_to),
    }
    return filter_spec, SortSpec(sort, direction) if sort else None


@router.get("", response_model=List[LogEntry], summary="Journal de synchro filtré")
async def list_logs(
    query: Tuple[FilterSpec, Optional[SortSpec]] = Depends(log_query),
    dashboard: DashboardController = DashboardDep,
) -> List[LogEntry]:
    filter_spec, sort_spec = query
    return compute_view(dashboard.aggregator.logs, filter_spec, sort_spec)


@router.get("/export", summary="Exporter le journal filtré en CSV")
async def export_logs(
    query: Tuple[FilterSpec, Optional[SortSpec]] = Depends(log_query),
    dashboard: DashboardController = DashboardDep,
) -> Response:
    filter_spec, sort_spec = query
    entries = compute_view(dashboard.aggregator.logs, filter_spec, sort_spec)
    filename = export_filename(datetime.now().date())
    return Response(
        content=logs_to_csv(entries),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
