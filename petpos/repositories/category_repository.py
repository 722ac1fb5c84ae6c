"""
Category Repository - Data Access Layer for Categories

Category names are not unique at the store level. Products refer to a
category by name, so deleting a category does not touch any product.
"""
import logging
from typing import List, Optional, Union

from petpos.core.ids import generate_id
from petpos.core.record_store import CATEGORIES, RecordStore
from petpos.domain.category import Category, CategoryCreate

logger = logging.getLogger(__name__)


class CategoryRepository:
    """Repository for Category data access"""

    def __init__(self, store: RecordStore):
        self.store = store

    def add_category(self, data: Union[CategoryCreate, dict]) -> Category:
        """
        Add a category

        Args:
            data: Category fields; id is assigned if absent

        Returns:
            The stored Category
        """
        if not isinstance(data, CategoryCreate):
            data = CategoryCreate.model_validate(data)

        category = Category(id=data.id or generate_id(), name=data.name)
        self.store.add(CATEGORIES, category.to_record())
        logger.info(f"Category added: {category.name}")
        return category

    def update_category(self, data: Union[Category, dict]) -> Category:
        """Replace a category by id (upsert)"""
        if not isinstance(data, Category):
            data = Category.model_validate(data)
        self.store.put(CATEGORIES, data.to_record())
        return data

    def delete_category(self, category_id: str) -> None:
        self.store.delete(CATEGORIES, category_id)
        logger.info(f"Category deleted: {category_id}")

    def get_category(self, category_id: str) -> Optional[Category]:
        record = self.store.get(CATEGORIES, category_id)
        return Category.model_validate(record) if record else None

    def get_all_categories(self) -> List[Category]:
        return [Category.model_validate(r) for r in self.store.get_all(CATEGORIES)]

    def find_by_name(self, name: str) -> Optional[Category]:
        """First category with exactly this name, or None"""
        for category in self.get_all_categories():
            if category.name == name:
                return category
        return None

    def ensure_category(self, name: str) -> Category:
        """
        Return the category with this name, creating it if missing

        Used where categories are created implicitly (spreadsheet import), so
        importing the same category twice does not duplicate it.
        """
        existing = self.find_by_name(name.strip())
        if existing:
            return existing
        return self.add_category(CategoryCreate(name=name))
