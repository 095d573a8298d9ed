import csv
import logging
import sys
from pathlib import Path
from typing import Dict, List

from sqlmodel import Session, select

from sync_manager.db import engine, init_db
from sync_manager.models.product import Product
from sync_manager.models.sync import PlatformId

log = logging.getLogger("import_products")

CSV_PATH = Path("catalog_products.csv")
PLATFORMS_BY_NAME: Dict[str, PlatformId] = {}
for _p in PlatformId:
    PLATFORMS_BY_NAME[_p.value] = _p
    PLATFORMS_BY_NAME[_p.label.lower()] = _p


def parse_platforms(raw: str) -> List[PlatformId]:
    """'Loja Integrada;woocommerce' -> [LOJA_INTEGRADA, WOOCOMMERCE]"""
    platforms: List[PlatformId] = []
    for part in (raw or "").split(";"):
        key = part.strip().lower()
        if not key:
            continue
        platform = PLATFORMS_BY_NAME.get(key)
        if platform is None:
            raise ValueError(f"Plateforme inconnue: {part!r}")
        if platform not in platforms:
            platforms.append(platform)
    return platforms


def import_products(db: Session, path: Path) -> Dict[str, int]:
    created = 0
    updated = 0
    skipped_no_sku = 0

    with path.open(encoding="utf-8") as f:
        reader = csv.DictReader(f)

        for row in reader:
            sku = (row.get("sku") or "").strip()
            if not sku:
                skipped_no_sku += 1
                continue

            data = {
                "name": (row.get("name") or sku).strip(),
                "category": (row.get("category") or "Sem categoria").strip(),
                "inventory": int(row.get("inventory") or 0),
                "price": float(row.get("price") or 0),
                "platforms": parse_platforms(row.get("platforms") or ""),
            }

            # UPSERT PRODUCT par SKU
            product = db.exec(select(Product).where(Product.sku == sku)).first()
            if not product:
                db.add(Product(sku=sku, **data))
                created += 1
            else:
                for field, value in data.items():
                    setattr(product, field, value)
                updated += 1

    db.commit()
    return {"created": created, "updated": updated, "skipped_no_sku": skipped_no_sku}


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else CSV_PATH
    if not path.exists():
        raise FileNotFoundError(f"CSV introuvable: {path.resolve()}")

    init_db()
    with Session(engine) as db:
        stats = import_products(db, path)

    log.info(
        "[IMPORT CSV] Produits créés: %s | mis à jour: %s | sans SKU ignorés: %s",
        stats["created"],
        stats["updated"],
        stats["skipped_no_sku"],
    )


if __name__ == "__main__":
    main()
