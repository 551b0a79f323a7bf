# app/routers/potluck.py

import asyncio
from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import StreamingResponse
from typing import Dict, Any
from ..dependencies.session import (
    get_registry,
    get_view,
    get_view_session,
    persist_identity,
)
from ..schemas.view import FormUpdate, ViewState
from ..services.session_registry import SessionRegistry, ViewSession
from ..services.view_model import ViewModel
from ..utils.constants import AppConstants, ResponseMessages
from ..utils.router_helpers import handle_service_errors, RouterResponse

router = APIRouter(tags=["potluck"])


def _state(view: ViewModel) -> Dict[str, Any]:
    return view.state().model_dump(mode="json")


@router.get("/state", response_model=Dict[str, Any])
@handle_service_errors
async def get_state(view: ViewModel = Depends(get_view)):
    """Counts, roster and form for this browser"""
    await view.settle()
    return RouterResponse.success(data=_state(view))


@router.put("/form", response_model=Dict[str, Any])
@handle_service_errors
async def update_form(changes: FormUpdate, view: ViewModel = Depends(get_view)):
    """Edit local form fields; nothing is sent to the table"""
    view.update_form(changes)
    return RouterResponse.updated(data=_state(view), message="Form updated")


@router.post("/submit", response_model=Dict[str, Any])
@handle_service_errors
async def submit(response: Response, view: ViewModel = Depends(get_view)):
    """Add a dish, or save the dish being edited"""
    was_editing = view.is_editing
    response_id = await view.submit()
    persist_identity(response, view)
    await view.settle()

    data = {"response_id": response_id, "state": _state(view)}
    if was_editing:
        return RouterResponse.updated(data=data, message=ResponseMessages.UPDATED)
    return RouterResponse.created(data=data, message=ResponseMessages.CREATED)


@router.post("/responses/{response_id}/edit", response_model=Dict[str, Any])
@handle_service_errors
async def begin_edit(response_id: str, view: ViewModel = Depends(get_view)):
    view.begin_edit(response_id)
    return RouterResponse.success(data=_state(view), message="Editing dish")


@router.post("/edit/cancel", response_model=Dict[str, Any])
@handle_service_errors
async def cancel_edit(view: ViewModel = Depends(get_view)):
    view.cancel_edit()
    return RouterResponse.success(data=_state(view))


@router.delete("/responses/{response_id}", response_model=Dict[str, Any])
@handle_service_errors
async def delete_response(
    response_id: str,
    confirm: bool = Query(False, description="User confirmed the deletion"),
    view: ViewModel = Depends(get_view),
):
    await view.delete(response_id, confirmed=confirm)
    await view.settle()
    return RouterResponse.deleted(data=_state(view), message=ResponseMessages.DELETED)


@router.get("/stream")
async def stream_state(
    request: Request, session: ViewSession = Depends(get_view_session)
):
    """Server-sent events carrying the full display state after every change"""
    view = session.view
    queue: "asyncio.Queue[ViewState]" = asyncio.Queue()

    async def events():
        view.add_listener(queue.put_nowait)
        session.attach_stream()
        try:
            yield _event(view.state())
            while not await request.is_disconnected():
                try:
                    state = await asyncio.wait_for(
                        queue.get(), timeout=AppConstants.STREAM_KEEPALIVE_SECONDS
                    )
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield _event(state)
        finally:
            view.remove_listener(queue.put_nowait)
            session.detach_stream()

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/session/close", response_model=Dict[str, Any])
@handle_service_errors
async def close_session(
    request: Request, registry: SessionRegistry = Depends(get_registry)
):
    """Unmount this browser's view (sent when the page is left).

    Deferred while another tab of the same browser still has a stream open.
    """
    closed = await registry.close(request.cookies.get(AppConstants.SESSION_COOKIE))
    return RouterResponse.success(data={"closed": closed})


def _event(state: ViewState) -> str:
    return f"data: {state.model_dump_json()}\n\n"
