"""API v1 router configuration."""

from fastapi import APIRouter

from api.v1.routes.access_requests import (
    access_requests_router,
    workspace_access_requests_router,
)
from api.v1.routes.invitations import invitations_router, workspace_invitations_router
from api.v1.routes.links import links_router, workspace_links_router
from api.v1.routes.maintenance import router as maintenance_router

router = APIRouter()
router.include_router(workspace_invitations_router)
router.include_router(invitations_router)
router.include_router(workspace_links_router)
router.include_router(links_router)
router.include_router(workspace_access_requests_router)
router.include_router(access_requests_router)
router.include_router(maintenance_router)
