"""Seeds item categories and copies the KiotViet catalog into the record store."""

from datetime import datetime
from pathlib import Path
from typing import Any, Literal

import structlog
import yaml  # type: ignore[import-untyped]

from kiot_board.clients.kiotviet import (
    PRODUCT_TYPE_GOODS,
    PRODUCT_TYPE_SERVICE,
    KiotVietClient,
)
from kiot_board.store import RecordStore

logger = structlog.get_logger(__name__)

CatalogKind = Literal["customers", "goods", "services"]


def load_seed_categories() -> list[dict[str, Any]]:
    """Load the bundled category list."""
    path = Path(__file__).resolve().parent / "data" / "categories.yaml"
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    categories = data.get("categories", [])
    if not isinstance(categories, list):
        raise ValueError("categories.yaml: categories must be a list")
    for entry in categories:
        if not isinstance(entry, dict) or not entry.get("name"):
            raise ValueError(f"categories.yaml: invalid category entry {entry!r}")
    return categories


def customer_row(customer: dict[str, Any]) -> dict[str, Any]:
    birth_date = customer.get("birthDate")
    dob = None
    if birth_date:
        try:
            dob = datetime.fromisoformat(str(birth_date)[:19]).date().isoformat()
        except ValueError:
            dob = None
    return {
        "full_name": customer.get("name"),
        "customer_code": customer.get("code"),
        "phone": customer.get("contactNumber") or None,
        "gender": customer.get("gender"),
        "dob": dob,
        "created_by": "system",
    }


def _first_image(product: dict[str, Any]) -> str | None:
    images = product.get("images") or []
    return images[0] if images else None


def goods_row(product: dict[str, Any], category_id: int | None) -> dict[str, Any]:
    inventories = product.get("inventories") or []
    return {
        "goods_code": product.get("code"),
        "name": product.get("fullName"),
        "description": product.get("description") or None,
        "price": product.get("basePrice") or 0,
        "stock_quantity": inventories[0].get("onHand", 0) if inventories else 0,
        "status": 1,
        "category_id": category_id,
        "image_url": _first_image(product),
    }


def service_row(product: dict[str, Any], category_id: int | None) -> dict[str, Any]:
    return {
        "name": product.get("fullName"),
        "service_code": product.get("code"),
        "description": product.get("description") or None,
        "price": product.get("basePrice") or 0,
        "status": 1,
        "category_id": category_id,
        "estimated_duration_minutes": 0,
        "image_url": _first_image(product),
    }


class CatalogSync:
    """Idempotent catalog ingestion: records whose code is already stored are skipped."""

    def __init__(self, client: KiotVietClient, store: RecordStore):
        self._client = client
        self._store = store

    def seed_categories(self) -> int:
        """Insert the bundled categories when the table is empty. Returns rows inserted."""
        result = self._store.query("SELECT COUNT(*) AS count FROM item_category")
        existing = int(result[0]["count"]) if result else 0
        if existing:
            logger.info("categories_already_seeded", count=existing)
            return 0

        categories = load_seed_categories()
        for category in categories:
            self._store.insert("item_category", dict(category))
        logger.info("categories_seeded", count=len(categories))
        return len(categories)

    def category_id_for(self, category_name: str | None) -> int | None:
        if not category_name:
            return None
        rows = self._store.query(
            "SELECT id FROM item_category WHERE name LIKE ? LIMIT 1", (f"%{category_name}%",)
        )
        return int(rows[0]["id"]) if rows else None

    def _exists(self, table: str, code_column: str, code: Any) -> bool:
        # table/column come from the fixed call sites below, never from input
        rows = self._store.query(f"SELECT 1 FROM {table} WHERE {code_column} = ? LIMIT 1", (code,))
        return bool(rows)

    async def sync_customers(self) -> int:
        customers = await self._client.list_customers()
        inserted = 0
        for customer in customers:
            if not customer.get("code") or self._exists("customer", "customer_code", customer["code"]):
                continue
            self._store.insert("customer", customer_row(customer))
            inserted += 1
        logger.info("customers_synced", fetched=len(customers), inserted=inserted)
        return inserted

    async def sync_goods(self) -> int:
        products = await self._client.list_products(PRODUCT_TYPE_GOODS)
        inserted = 0
        for product in products:
            if not product.get("code") or self._exists("goods", "goods_code", product["code"]):
                continue
            category_id = self.category_id_for(product.get("categoryName"))
            self._store.insert("goods", goods_row(product, category_id))
            inserted += 1
        logger.info("goods_synced", fetched=len(products), inserted=inserted)
        return inserted

    async def sync_services(self) -> int:
        products = await self._client.list_products(PRODUCT_TYPE_SERVICE)
        inserted = 0
        for product in products:
            if not product.get("code") or self._exists("service", "service_code", product["code"]):
                continue
            category_id = self.category_id_for(product.get("categoryName"))
            self._store.insert("service", service_row(product, category_id))
            inserted += 1
        logger.info("services_synced", fetched=len(products), inserted=inserted)
        return inserted

    async def run(self, kind: CatalogKind) -> int:
        """Seed categories, then ingest one catalog kind."""
        self.seed_categories()
        if kind == "customers":
            return await self.sync_customers()
        if kind == "goods":
            return await self.sync_goods()
        if kind == "services":
            return await self.sync_services()
        raise ValueError(f"Unknown catalog kind: {kind!r}")
