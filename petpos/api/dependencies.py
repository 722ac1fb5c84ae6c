"""
Shared API dependencies

Repositories and services are built once per open store (app startup) and
handed to the routers through these FastAPI dependencies.
"""
from dataclasses import dataclass

from fastapi import Depends, Request

from petpos.core.database import get_store
from petpos.core.exceptions import StorageUnavailable
from petpos.core.record_store import RecordStore
from petpos.repositories.category_repository import CategoryRepository
from petpos.repositories.order_repository import OrderRepository
from petpos.repositories.product_repository import ProductRepository
from petpos.services.backup_service import BackupService
from petpos.services.checkout_service import CheckoutService
from petpos.services.import_service import ProductImportService
from petpos.services.receipt_service import ReceiptService


@dataclass
class PosContext:
    store: RecordStore
    products: ProductRepository
    categories: CategoryRepository
    orders: OrderRepository
    checkout: CheckoutService
    imports: ProductImportService
    backup: BackupService
    receipts: ReceiptService


def build_context(store: RecordStore) -> PosContext:
    products = ProductRepository(store)
    categories = CategoryRepository(store)
    orders = OrderRepository(store)
    return PosContext(
        store=store,
        products=products,
        categories=categories,
        orders=orders,
        checkout=CheckoutService(products, orders),
        imports=ProductImportService(products, categories),
        backup=BackupService(store, orders),
        receipts=ReceiptService(),
    )


def get_context(request: Request, store: RecordStore = Depends(get_store)) -> PosContext:
    context = getattr(request.app.state, "pos", None)
    if context is None or context.store is not store:
        raise StorageUnavailable("Datastore is not ready")
    return context


def get_product_repository(context: PosContext = Depends(get_context)) -> ProductRepository:
    return context.products


def get_category_repository(context: PosContext = Depends(get_context)) -> CategoryRepository:
    return context.categories


def get_order_repository(context: PosContext = Depends(get_context)) -> OrderRepository:
    return context.orders
