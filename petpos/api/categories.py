"""
Categories API Endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from petpos.api.dependencies import get_category_repository
from petpos.domain.category import Category, CategoryCreate
from petpos.repositories.category_repository import CategoryRepository

router = APIRouter()


class CategoryRename(BaseModel):
    name: str = Field(..., min_length=1)


@router.get("/")
def get_categories(repo: CategoryRepository = Depends(get_category_repository)):
    categories = repo.get_all_categories()
    return {
        "status": "success",
        "count": len(categories),
        "data": [c.to_record() for c in categories],
    }


@router.post("/", status_code=201)
def create_category(data: CategoryCreate, repo: CategoryRepository = Depends(get_category_repository)):
    category = repo.add_category(data)
    return {
        "status": "success",
        "data": category.to_record(),
    }


@router.put("/{category_id}")
def rename_category(
    category_id: str,
    data: CategoryRename,
    repo: CategoryRepository = Depends(get_category_repository),
):
    """Rename a category. Products keep the category name they were saved with."""
    if not repo.get_category(category_id):
        raise HTTPException(status_code=404, detail=f"Category {category_id} not found")

    category = repo.update_category(Category(id=category_id, name=data.name))
    return {
        "status": "success",
        "data": category.to_record(),
    }


@router.delete("/{category_id}")
def delete_category(category_id: str, repo: CategoryRepository = Depends(get_category_repository)):
    if not repo.get_category(category_id):
        raise HTTPException(status_code=404, detail=f"Category {category_id} not found")

    repo.delete_category(category_id)
    return {
        "status": "success",
        "message": f"Category {category_id} deleted",
    }
