"""Administrative maintenance endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from forum.api.deps import get_maintenance_service
from forum.domain.maintenance_service import MaintenanceService
from forum.domain.roles import Role
from forum.infra.auth import AuthenticatedUser, require_role
from forum.schemas import dto

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/reconcile", response_model=dto.ReconcileResponse)
async def reconcile_topics(
	_: AuthenticatedUser = Depends(require_role(Role.ADMIN)),
	service: MaintenanceService = Depends(get_maintenance_service),
) -> dto.ReconcileResponse:
	return await service.reconcile_topics()


__all__ = ["router"]
