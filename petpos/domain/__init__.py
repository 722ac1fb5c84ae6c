"""
Domain Layer - Business Entities

This layer contains Pydantic models representing business entities.
These models enforce type safety and validation across the application.
"""
from petpos.domain.product import Product, ProductCreate, ProductUpdate
from petpos.domain.category import Category, CategoryCreate
from petpos.domain.order import Order, OrderCreate, OrderItem, DailyStats, SalesSummary

__all__ = [
    'Product', 'ProductCreate', 'ProductUpdate',
    'Category', 'CategoryCreate',
    'Order', 'OrderCreate', 'OrderItem', 'DailyStats', 'SalesSummary',
]
