"""
Catalog endpoints
"""
from fastapi import APIRouter, Depends

from fireworks_orders.api.deps import get_catalog
from fireworks_orders.services.catalog_lookup import CatalogLookup

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/categories", summary="Product categories")
def list_categories(catalog: CatalogLookup = Depends(get_catalog)):
    """Category labels; may lag a newly added category by the cache TTL"""
    return {"categories": catalog.categories()}
