from fastapi import APIRouter

from dealflow.api.routes import admin, deals, health, partner, workflow

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(deals.router)
api_router.include_router(workflow.router)
api_router.include_router(partner.router)
api_router.include_router(admin.router)
