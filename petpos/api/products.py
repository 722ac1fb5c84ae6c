"""
Products API Endpoints
Handles product catalog management, scanner lookups and spreadsheet import
"""
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from petpos.api.dependencies import PosContext, get_context, get_product_repository
from petpos.domain.product import ProductCreate, ProductUpdate
from petpos.repositories.product_repository import ProductRepository

router = APIRouter()


# Request models
class ImportRequest(BaseModel):
    rows: List[Union[Dict[str, Any], List[Any]]]


@router.get("/")
def get_products(
    search: Optional[str] = Query(None, description="Search by name, barcode or category"),
    category: Optional[str] = Query(None, description="Filter by category name"),
    repo: ProductRepository = Depends(get_product_repository),
):
    """
    Get all products with optional filters

    search and category combine: a search inside one category.
    """
    if category:
        products = repo.find_by_category(category)
    else:
        products = repo.get_all_products()

    if search:
        matches = {p.id for p in repo.search_products(search)}
        products = [p for p in products if p.id in matches]

    return {
        "status": "success",
        "count": len(products),
        "data": [p.to_dict() for p in products],
    }


@router.get("/stats")
def get_product_stats(repo: ProductRepository = Depends(get_product_repository)):
    """
    Get product statistics

    Returns:
    - Total products
    - Stock levels
    - Products by category
    - Stock value at cost
    """
    return {
        "status": "success",
        "data": repo.get_stats(),
    }


@router.get("/low-stock")
def get_low_stock_products(
    threshold: Optional[int] = Query(None, ge=0, description="Stock threshold (default from settings)"),
    repo: ProductRepository = Depends(get_product_repository),
):
    products = repo.find_low_stock(threshold)
    return {
        "status": "success",
        "count": len(products),
        "data": [p.to_dict() for p in products],
    }


@router.get("/barcode/{barcode}")
def get_product_by_barcode(barcode: str, repo: ProductRepository = Depends(get_product_repository)):
    """Scanner lookup"""
    product = repo.get_product_by_barcode(barcode)
    if not product:
        raise HTTPException(status_code=404, detail=f"No product with barcode {barcode}")

    return {
        "status": "success",
        "data": product.to_dict(),
    }


@router.get("/{product_id}")
def get_product(product_id: str, repo: ProductRepository = Depends(get_product_repository)):
    product = repo.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")

    return {
        "status": "success",
        "data": product.to_dict(),
    }


@router.post("/", status_code=201)
def create_product(data: ProductCreate, repo: ProductRepository = Depends(get_product_repository)):
    """
    Create a product

    Returns 409 when the barcode is already taken.
    """
    product = repo.add_product(data)
    return {
        "status": "success",
        "message": f"Product {product.name} created",
        "data": product.to_dict(),
    }


@router.put("/{product_id}")
def update_product(
    product_id: str,
    data: ProductUpdate,
    repo: ProductRepository = Depends(get_product_repository),
):
    """Update the given fields of a product"""
    if not repo.get_product(product_id):
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")

    product = repo.update_product(data, product_id=product_id)
    return {
        "status": "success",
        "message": f"Product {product.name} updated",
        "data": product.to_dict(),
    }


@router.delete("/{product_id}")
def delete_product(product_id: str, repo: ProductRepository = Depends(get_product_repository)):
    """Delete a product. Past orders keep their copy of it."""
    if not repo.get_product(product_id):
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")

    repo.delete_product(product_id)
    return {
        "status": "success",
        "message": f"Product {product_id} deleted",
    }


@router.post("/import")
def import_products(request: ImportRequest, context: PosContext = Depends(get_context)):
    """
    Bulk create/update products from spreadsheet rows

    Rows are matched by barcode. Bad rows are reported, not fatal.
    """
    result = context.imports.import_rows(request.rows)
    return {
        "status": "success",
        "message": f"Imported {result.imported} products, {result.failed} failed",
        "data": asdict(result),
    }
