"""
Pharma Field Sales - Routes Products
Catalog CRUD, CSV import and the product_id backfill.
"""

from fastapi import APIRouter, Depends
from typing import Optional

from models.product import ProductCreate, ProductUpdate, ProductImport
from services import product_catalog as catalog
from services.api_response import ok
from services.permissions import require_admin, require_any_role

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("")
async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    user: dict = Depends(require_any_role)
):
    products = await catalog.list_products(category=category, search=search, is_active=is_active)
    return ok({"count": len(products), "products": products})


# ==================== MAINTENANCE (before /{product_id}) ====================

@router.post("/import")
async def import_products(data: ProductImport, admin: dict = Depends(require_admin)):
    result = await catalog.import_products_csv(data.content, created_by=admin["id"])
    return ok(
        result,
        message=f"{len(result['created'])} created, {result['skipped']} skipped, {len(result['failed'])} failed"
    )


@router.post("/backfill-ids")
async def backfill_product_ids(admin: dict = Depends(require_admin)):
    assigned = await catalog.backfill_product_ids()
    return ok({"count": len(assigned), "assigned": assigned}, message=f"{len(assigned)} product ids assigned")


# ==================== CRUD ====================

@router.get("/{product_id}")
async def get_product(product_id: str, user: dict = Depends(require_any_role)):
    return ok(await catalog.get_product(product_id))


@router.post("", status_code=201)
async def create_product(data: ProductCreate, admin: dict = Depends(require_admin)):
    product = await catalog.create_product(data.model_dump(), created_by=admin["id"])
    return ok(product, message="Product created")


@router.put("/{product_id}")
async def update_product(product_id: str, data: ProductUpdate, admin: dict = Depends(require_admin)):
    product = await catalog.update_product(product_id, data.model_dump(exclude_unset=True))
    return ok(product, message="Product updated")


@router.delete("/{product_id}")
async def delete_product(product_id: str, admin: dict = Depends(require_admin)):
    await catalog.discontinue_product(product_id)
    return ok(message="Product discontinued")
