"""Admin API endpoints with simple token auth."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from meal_tracker.api.models import ReferenceRowsRequest

if TYPE_CHECKING:
    from meal_tracker.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])

_logger = logging.getLogger(__name__)


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.post("/sync", dependencies=[Depends(require_admin)])
async def sync_references(request: Request) -> dict[str, int]:
    """Republish curated and learned foods into the semantic index."""
    container: AppContainer = request.app.state.container
    try:
        result = await container.synchronizer.sync_from_store(
            container.reference_service
        )
    except Exception as exc:
        _logger.exception("Reference sync failed")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Sync failed"
        ) from exc
    return {
        "curated": result.curated,
        "learned": result.learned,
        "upserted": result.upserted,
    }


@router.post("/references", dependencies=[Depends(require_admin)])
async def insert_references(
    payload: ReferenceRowsRequest, request: Request
) -> dict[str, int]:
    """Insert curated reference foods."""
    container: AppContainer = request.app.state.container
    inserted = await container.reference_service.insert_curated(
        [row.to_row() for row in payload.rows]
    )
    return {"inserted": inserted}
