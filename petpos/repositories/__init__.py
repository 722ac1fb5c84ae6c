"""
Repository Layer - Data Access

This layer handles all Record Store access and returns domain models.
Repositories abstract away storage details from business logic.
"""
from petpos.repositories.product_repository import ProductRepository
from petpos.repositories.category_repository import CategoryRepository
from petpos.repositories.order_repository import OrderRepository

__all__ = [
    'ProductRepository',
    'CategoryRepository',
    'OrderRepository',
]
