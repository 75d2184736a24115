"""Top-level API router."""

from fastapi import APIRouter

from protrack.api.routes.budgets import router as budgets_router
from protrack.api.routes.costs import router as costs_router
from protrack.api.routes.dashboards import router as dashboards_router
from protrack.api.routes.employees import router as employees_router
from protrack.api.routes.exports import router as exports_router
from protrack.api.routes.health import router as health_router
from protrack.api.routes.invoices import router as invoices_router
from protrack.api.routes.me import router as me_router
from protrack.api.routes.projects import router as projects_router
from protrack.api.routes.tenants import router as tenants_router
from protrack.api.routes.users import router as users_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(tenants_router)
api_router.include_router(projects_router)
api_router.include_router(costs_router)
api_router.include_router(invoices_router)
api_router.include_router(budgets_router)
api_router.include_router(dashboards_router)
api_router.include_router(exports_router)
api_router.include_router(employees_router)
api_router.include_router(users_router)
