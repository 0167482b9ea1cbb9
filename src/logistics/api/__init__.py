"""Logistics HTTP API package."""

from logistics.api.approvals import approval_router
from logistics.api.custody import handover_router, scan_router
from logistics.api.errors import register_error_handlers
from logistics.api.feed import feed_router
from logistics.api.orders import order_router
from logistics.api.profiles import center_router, hospital_router, rider_router
from logistics.api.sla import hospital_sla_router, sweep_router

routers = [
    hospital_router,
    center_router,
    rider_router,
    hospital_sla_router,
    order_router,
    scan_router,
    handover_router,
    sweep_router,
    feed_router,
    approval_router,
]

__all__ = ["routers", "register_error_handlers"]
