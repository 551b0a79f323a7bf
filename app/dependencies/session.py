from fastapi import Depends, HTTPException, Request, Response, status
from ..services.session_registry import SessionRegistry, ViewSession
from ..services.sync_adapter import SyncAdapterError
from ..services.view_model import ViewModel
from ..utils.constants import AppConstants
import logging

logger = logging.getLogger(__name__)


def get_registry(request: Request) -> SessionRegistry:
    """Session registry created at application startup"""
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Potluck backend is not ready",
        )
    return registry


async def get_view_session(
    request: Request,
    response: Response,
    registry: SessionRegistry = Depends(get_registry),
) -> ViewSession:
    """Mounted view for this browser, created on first visit"""
    session_id = request.cookies.get(AppConstants.SESSION_COOKIE)
    try:
        session = await registry.open(
            session_id, identity_token=request.cookies.get(AppConstants.IDENTITY_KEY)
        )
    except SyncAdapterError as e:
        logger.error(f"Failed to mount view session: {str(e)}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    if session.session_id != session_id:
        response.set_cookie(
            AppConstants.SESSION_COOKIE,
            session.session_id,
            httponly=True,
            samesite="lax",
        )
    return session


async def get_view(session: ViewSession = Depends(get_view_session)) -> ViewModel:
    return session.view


def persist_identity(response: Response, view: ViewModel) -> None:
    """Write a newly saved identity token back to the browser"""
    response_id = view.identity.take_pending()
    if response_id is None:
        return

    response.set_cookie(
        AppConstants.IDENTITY_KEY,
        response_id,
        max_age=AppConstants.IDENTITY_MAX_AGE,
        samesite="lax",
    )
    logger.debug(f"Stored identity token {response_id}")
