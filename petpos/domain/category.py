"""
Category Domain Model

Categories group products by name. Products point at a category by its name
(soft reference), so renaming or deleting a category leaves existing products
untouched.
"""
from pydantic import Field
from typing import Optional

from petpos.domain.base import RecordModel


class Category(RecordModel):
    """Product category"""

    id: str = Field(..., description="Record id")
    name: str = Field(..., min_length=1, description="Category name")


class CategoryCreate(RecordModel):
    """Schema for creating a category (id is assigned if absent)"""
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
