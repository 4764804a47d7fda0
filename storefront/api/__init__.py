# storefront/api/__init__.py
from fastapi import APIRouter

from storefront.api.routers import carts, orders, payments, users

api_router = APIRouter(prefix="/api")
api_router.include_router(users.router)
api_router.include_router(carts.router)
api_router.include_router(orders.router)
api_router.include_router(payments.router)
