"""API v1 router aggregator."""

from fastapi import APIRouter

from sellerdash.api.v1 import accounts, amazon, dashboard, dev, health

api_router = APIRouter()

# Health check
api_router.include_router(health.router, prefix="/health", tags=["health"])

# Accounts
api_router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])

# Amazon connection, sync and diagnostics
api_router.include_router(amazon.router, prefix="/amazon", tags=["amazon"])

# Dashboard, listings and inventory
api_router.include_router(dashboard.router, tags=["dashboard"])

# Development diagnostics
api_router.include_router(dev.router, prefix="/dev", tags=["dev"])
