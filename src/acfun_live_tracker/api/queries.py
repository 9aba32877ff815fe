"""Query and diagnostics endpoints."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from acfun_live_tracker.domain.errors import DisambiguationError, LiveTrackerError

if TYPE_CHECKING:
    from acfun_live_tracker.containers import AppContainer

router = APIRouter(tags=["lives"])


def _get_admin_token(request: Request) -> str | None:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str | None = Depends(_get_admin_token),
) -> None:
    """Ensure requests include the admin token when one is configured."""
    if admin_token and x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/owners/{owner_id}/lives", dependencies=[Depends(require_admin)])
async def list_owner_lives(
    owner_id: int, request: Request, limit: int = -1
) -> dict[str, object]:
    """Return stored lives of an owner, newest first."""
    container: AppContainer = request.app.state.container
    sessions = container.session_service.list_by_owner(owner_id, limit)
    return {"lives": [asdict(session) for session in sessions]}


@router.get("/lives/{live_id}", dependencies=[Depends(require_admin)])
async def get_live(live_id: str, request: Request) -> dict[str, object]:
    """Return one stored live."""
    container: AppContainer = request.app.state.container
    session = container.session_service.get(live_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return asdict(session)


@router.get("/lives/{live_id}/playback", dependencies=[Depends(require_admin)])
async def get_playback(live_id: str, request: Request) -> dict[str, object]:
    """Look up recording links for a live."""
    container: AppContainer = request.app.state.container
    try:
        playback = await container.lookup_service.resolve_playback(live_id)
    except DisambiguationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    except LiveTrackerError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)
        ) from exc
    return asdict(playback)


@router.get("/snapshot", dependencies=[Depends(require_admin)])
async def snapshot(request: Request, owner_id: int | None = None) -> dict[str, object]:
    """Fetch the current live list directly from upstream."""
    container: AppContainer = request.app.state.container
    try:
        lives = await container.snapshot_fetcher.fetch_snapshot()
    except LiveTrackerError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)
        ) from exc
    selected = [
        asdict(session)
        for session in lives.values()
        if owner_id is None or session.owner_id == owner_id
    ]
    return {"total": len(lives), "lives": selected}
