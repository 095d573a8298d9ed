# sync_manager/routes/products.py
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from sync_manager.db import get_session
from sync_manager.deps import get_dashboard
from sync_manager.models.product import Product, ProductCreate, ProductRead, ProductUpdate
from sync_manager.services.dashboard import DashboardController
from sync_manager.services.explorer import Equals, Includes, Search

router = APIRouter(prefix="/products", tags=["products"])
log = logging.getLogger("uvicorn.error")

SessionDep = Depends(get_session)
DashboardDep = Depends(get_dashboard)

PRODUCT_SORT_FIELDS = {
    "sku", "name", "category", "inventory", "price", "sync_status", "platforms", "last_synced_at",
}


class ProductFilter(BaseModel):
    search: str = ""
    category: Optional[str] = None
    status: Optional[str] = None
    platform: Optional[str] = None


class ProductView(BaseModel):
    products: List[ProductRead]
    total: int
    sort_field: Optional[str] = None
    sort_direction: Optional[str] = None
    selected_ids: List[int]
    all_selected: bool


def _load_catalog(session: Session, dashboard: DashboardController) -> None:
    products = session.exec(select(Product)).all()
    dashboard.load_products([ProductRead.model_validate(p) for p in products])


def _view(dashboard: DashboardController) -> ProductView:
    explorer = dashboard.products
    sort = explorer.sort_spec
    return ProductView(
        products=explorer.view,
        total=len(explorer.records),
        sort_field=sort.field if sort else None,
        sort_direction=sort.direction if sort else None,
        selected_ids=sorted(explorer.selection.selected_ids),
        all_selected=explorer.selection.all_selected,
    )


# ---------------------------------------------------------
#  Vue filtrée / triée + sélection
# ---------------------------------------------------------

@router.get("/view", response_model=ProductView, summary="Catalogue filtré, trié, avec sélection")
async def product_view(
    session: Session = SessionDep, dashboard: DashboardController = DashboardDep
) -> ProductView:
    _load_catalog(session, dashboard)
    return _view(dashboard)


@router.put("/view/filter", response_model=ProductView, summary="Changer les filtres du catalogue")
async def set_product_filter(
    payload: ProductFilter,
    session: Session = SessionDep,
    dashboard: DashboardController = DashboardDep,
) -> ProductView:
    _load_catalog(session, dashboard)
    dashboard.products.set_filter(
        {
            "sku": Search(payload.search, fields=("sku", "name")),
            "category": Equals(payload.category),
            "sync_status": Equals(payload.status),
            "platforms": Includes(payload.platform),
        }
    )
    return _view(dashboard)


@router.post("/view/sort/{field}", response_model=ProductView, summary="Trier (re-cliquer inverse le sens)")
async def sort_products(
    field: str, session: Session = SessionDep, dashboard: DashboardController = DashboardDep
) -> ProductView:
    if field not in PRODUCT_SORT_FIELDS:
        raise HTTPException(status_code=422, detail=f"Champ de tri inconnu: {field}")
    _load_catalog(session, dashboard)
    dashboard.products.sort_by(field)
    return _view(dashboard)


@router.get("/categories", response_model=List[str], summary="Catégories distinctes")
async def product_categories(
    session: Session = SessionDep, dashboard: DashboardController = DashboardDep
) -> List[str]:
    _load_catalog(session, dashboard)
    return dashboard.products.facet_values("category")


@router.post("/selection/toggle-all", response_model=ProductView, summary="Tout (dé)sélectionner dans la vue")
async def toggle_all_products(
    session: Session = SessionDep, dashboard: DashboardController = DashboardDep
) -> ProductView:
    _load_catalog(session, dashboard)
    dashboard.products.selection.toggle_all()
    return _view(dashboard)


@router.post("/selection/toggle/{product_id}", response_model=ProductView, summary="(Dé)sélectionner un produit")
async def toggle_product(
    product_id: int, session: Session = SessionDep, dashboard: DashboardController = DashboardDep
) -> ProductView:
    _load_catalog(session, dashboard)
    dashboard.products.toggle(product_id)
    return _view(dashboard)


@router.delete("/selection", response_model=ProductView, summary="Vider la sélection")
async def clear_selection(
    session: Session = SessionDep, dashboard: DashboardController = DashboardDep
) -> ProductView:
    _load_catalog(session, dashboard)
    dashboard.products.selection.clear()
    return _view(dashboard)


# ---------------------------------------------------------
#  CRUD catalogue
# ---------------------------------------------------------

def _commit(session: Session, context: str) -> None:
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        log.exception("❌ DB Error on %s", context)
        raise HTTPException(status_code=500, detail=f"DB Error: {e.__class__.__name__}")


def _ensure_sku_free(session: Session, sku: str, product_id: Optional[int] = None) -> None:
    existing = session.exec(select(Product).where(Product.sku == sku)).first()
    if existing and existing.id != product_id:
        raise HTTPException(status_code=409, detail=f"SKU déjà utilisé: {sku}")


@router.get("", response_model=List[ProductRead], summary="Lister tous les produits")
def list_products(session: Session = SessionDep) -> List[Product]:
    return session.exec(select(Product)).all()


@router.get("/{product_id}", response_model=ProductRead, summary="Récupérer un produit")
def get_product(product_id: int, session: Session = SessionDep) -> Product:
    product = session.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Produit introuvable")
    return product


@router.post("", response_model=ProductRead, status_code=201, summary="Créer un produit")
def create_product(payload: ProductCreate, session: Session = SessionDep) -> Product:
    _ensure_sku_free(session, payload.sku)

    product = Product.model_validate(payload)
    session.add(product)
    _commit(session, "POST /products")
    session.refresh(product)
    return product


@router.put("/{product_id}", response_model=ProductRead, summary="Mettre à jour un produit")
def update_product(product_id: int, payload: ProductUpdate, session: Session = SessionDep) -> Product:
    product = session.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Produit introuvable")

    data = payload.model_dump(exclude_unset=True)
    if data.get("sku") is not None and data["sku"] != product.sku:
        _ensure_sku_free(session, data["sku"], product_id)

    for key, value in data.items():
        setattr(product, key, value)

    product.updated_at = datetime.now(timezone.utc)
    session.add(product)
    _commit(session, f"PUT /products/{product_id}")
    session.refresh(product)
    return product


# async: la sélection partagée n'est modifiée que depuis la boucle asyncio
@router.delete("/{product_id}", status_code=204, summary="Supprimer un produit")
async def delete_product(
    product_id: int, session: Session = SessionDep, dashboard: DashboardController = DashboardDep
) -> None:
    product = session.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Produit introuvable")
    session.delete(product)
    _commit(session, f"DELETE /products/{product_id}")
    # suppression définitive -> on retire l'id de la sélection
    dashboard.products.remove_records([product_id])
