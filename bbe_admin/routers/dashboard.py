from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from bbe_admin.core.services import get_directory
from bbe_admin.core.templating import templates
from bbe_admin.routers.auth import get_session, pop_flashes, require_session
from bbe_admin.services.clients import ClientDirectory

router = APIRouter(tags=["dashboard"])


@router.get("/", response_class=HTMLResponse)
async def root(request: Request):
    target = "/dashboard" if get_session(request) else "/login"
    return RedirectResponse(url=target, status_code=status.HTTP_303_SEE_OTHER)


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    session: Dict[str, Any] = Depends(require_session),
    directory: ClientDirectory = Depends(get_directory),
):
    await directory.load()
    stats = directory.stats()
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "user_email": session["email"],
            "flashes": pop_flashes(session),
            "error": directory.error,
            "stats": stats,
            "recent": directory.recent_activity(),
        },
    )
