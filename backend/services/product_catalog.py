"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Pharma Field Sales - Product Catalog                                        ║
║                                                                              ║
║  product_id is OPTIONAL and unique only among non-null values                ║
║  (sparse unique index). Products without one are numbered later by the       ║
║  one-off backfill: PROD0001, PROD0002, ...                                   ║
║                                                                              ║
║  CSV IMPORT:                                                                 ║
║  - header: product_id, product_name|name, category, composition,             ║
║            dosage_form|dosageform, price                                     ║
║  - rows without a name are skipped silently                                  ║
║  - each row is inserted on its own, partial success is fine                  ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import csv
import io
import logging
import math
import re
import uuid
from typing import Optional, Dict, Any, List

from config import db, now_iso
from services.errors import ValidationError, NotFoundError
from services.sequences import next_code, ensure_at_least

logger = logging.getLogger("product_catalog")


async def _get_or_raise(product_id: str) -> Dict[str, Any]:
    product = await db.products.find_one({"id": product_id}, {"_id": 0})
    if not product:
        raise NotFoundError("Product not found")
    return product


async def _check_unique(code: Optional[str], name: Optional[str], exclude_id: Optional[str] = None):
    not_self = {"id": {"$ne": exclude_id}} if exclude_id else {}
    if code:
        if await db.products.find_one({"product_id": code, **not_self}, {"_id": 0, "id": 1}):
            raise ValidationError(f"Product id {code} is already used")
    if name:
        pattern = f"^{re.escape(name)}$"
        clash = await db.products.find_one(
            {"basic_info.name": {"$regex": pattern, "$options": "i"}, **not_self},
            {"_id": 0, "id": 1}
        )
        if clash:
            raise ValidationError(f"A product named '{name}' already exists")


# ════════════════════════════════════════════════════════════════════════════
# CRUD
# ════════════════════════════════════════════════════════════════════════════

async def create_product(data: Dict[str, Any], created_by: Optional[str] = None) -> Dict[str, Any]:
    """
    data: ProductCreate.model_dump()
    Raises ValidationError on a duplicate product_id or name.
    """
    code = data.get("product_id")
    name = data["basic_info"]["name"]
    await _check_unique(code, name)

    now = now_iso()
    product = {
        "id": str(uuid.uuid4()),
        "product_id": code,
        "basic_info": data["basic_info"],
        "medical_info": data.get("medical_info") or {"composition": "", "dosage_form": ""},
        "business_info": data.get("business_info") or {"mrp": 0.0},
        "is_active": True,
        "is_discontinued": False,
        "created_by": created_by,
        "created_at": now,
        "updated_at": now,
    }
    if not code:
        # Absent, not null: the sparse index only skips missing keys
        product.pop("product_id")

    await db.products.insert_one(product)
    product.pop("_id", None)
    logger.info(f"[PRODUCT] created {product['id']} name={name} code={code}")
    return product


async def update_product(product_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    changes: ProductUpdate.model_dump(exclude_unset=True)
    Nested sections are merged field by field, not replaced.
    """
    await _get_or_raise(product_id)

    update = {}
    for section in ("basic_info", "medical_info", "business_info"):
        for field, value in (changes.get(section) or {}).items():
            if value is not None:
                update[f"{section}.{field}"] = value

    if "basic_info.name" in update:
        if not str(update["basic_info.name"]).strip():
            raise ValidationError("Product name is required")
        update["basic_info.name"] = update["basic_info.name"].strip()

    if changes.get("product_id"):
        update["product_id"] = changes["product_id"]
    if changes.get("is_active") is not None:
        update["is_active"] = changes["is_active"]

    await _check_unique(update.get("product_id"), update.get("basic_info.name"), exclude_id=product_id)

    update["updated_at"] = now_iso()
    await db.products.update_one({"id": product_id}, {"$set": update})
    return await _get_or_raise(product_id)


async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> List[Dict[str, Any]]:
    query = {}
    if category:
        query["basic_info.category"] = category
    if is_active is not None:
        query["is_active"] = is_active
    if search:
        pattern = re.escape(search)
        query["$or"] = [
            {"basic_info.name": {"$regex": pattern, "$options": "i"}},
            {"product_id": {"$regex": pattern, "$options": "i"}},
            {"medical_info.composition": {"$regex": pattern, "$options": "i"}},
        ]
    return await db.products.find(query, {"_id": 0}).sort("basic_info.name", 1).to_list(5000)


async def get_product(product_id: str) -> Dict[str, Any]:
    return await _get_or_raise(product_id)


async def discontinue_product(product_id: str):
    """Soft delete: visits keep pointing at the product."""
    await _get_or_raise(product_id)
    await db.products.update_one(
        {"id": product_id},
        {"$set": {"is_active": False, "is_discontinued": True, "updated_at": now_iso()}}
    )
    logger.info(f"[PRODUCT] discontinued {product_id}")


# ════════════════════════════════════════════════════════════════════════════
# CSV IMPORT
# ════════════════════════════════════════════════════════════════════════════

def normalize_import_row(row: Dict[str, str]) -> Optional[Dict[str, Any]]:
    """
    Maps one CSV row to the nested product shape.
    Returns None when the row has no name (skip). Raises ValueError on a bad price.
    """
    row = {(k or "").strip().lower(): (v or "").strip() for k, v in row.items() if k}

    name = row.get("product_name") or row.get("name") or ""
    if not name:
        return None

    price = row.get("price") or row.get("mrp") or ""
    mrp = float(price) if price else 0.0
    if not math.isfinite(mrp) or mrp < 0:
        raise ValueError(f"Invalid price: {price}")

    return {
        "product_id": (row.get("product_id") or "").upper() or None,
        "basic_info": {"name": name, "category": row.get("category", "")},
        "medical_info": {
            "composition": row.get("composition", ""),
            "dosage_form": row.get("dosage_form") or row.get("dosageform") or "",
        },
        "business_info": {"mrp": mrp},
    }


async def import_products_csv(content: str, created_by: Optional[str] = None) -> Dict[str, Any]:
    """
    Returns {"created": [...], "skipped": n, "failed": [{"line", "error"}]}.
    A failed row never stops the import.
    """
    reader = csv.DictReader(io.StringIO(content.lstrip("\ufeff")))
    if not reader.fieldnames:
        raise ValidationError("CSV content is empty")

    created = []
    failed = []
    skipped = 0
    # line 1 is the header
    for line, row in enumerate(reader, start=2):
        if not any((v or "").strip() for v in row.values() if isinstance(v, str)):
            continue
        try:
            data = normalize_import_row(row)
        except ValueError as e:
            failed.append({"line": line, "error": str(e)})
            continue
        if data is None:
            skipped += 1
            continue
        try:
            product = await create_product(data, created_by=created_by)
        except ValidationError as e:
            failed.append({"line": line, "error": e.message})
            continue
        created.append({"id": product["id"], "name": product["basic_info"]["name"]})

    logger.info(f"[PRODUCT_IMPORT] created={len(created)} skipped={skipped} failed={len(failed)}")
    return {"created": created, "skipped": skipped, "failed": failed}


# ════════════════════════════════════════════════════════════════════════════
# PRODUCT ID BACKFILL (maintenance)
# ════════════════════════════════════════════════════════════════════════════

async def backfill_product_ids() -> List[Dict[str, str]]:
    """
    Numbers every product lacking a product_id.

    The sequence is first moved past the current product count, so the
    first assigned id is PROD{count+1}; ids already taken are skipped.
    """
    total = await db.products.count_documents({})
    await ensure_at_least("product", total)

    missing = await db.products.find(
        {"$or": [{"product_id": {"$exists": False}}, {"product_id": None}, {"product_id": ""}]},
        {"_id": 0, "id": 1, "basic_info.name": 1}
    ).sort("created_at", 1).to_list(10000)

    assigned = []
    for product in missing:
        code = await next_code("product")
        while await db.products.find_one({"product_id": code}, {"_id": 0, "id": 1}):
            code = await next_code("product")
        await db.products.update_one(
            {"id": product["id"]},
            {"$set": {"product_id": code, "updated_at": now_iso()}}
        )
        name = (product.get("basic_info") or {}).get("name", "Unknown")
        assigned.append({"id": product["id"], "name": name, "product_id": code})
        logger.info(f"[PRODUCT_BACKFILL] {name} -> {code}")

    return assigned
