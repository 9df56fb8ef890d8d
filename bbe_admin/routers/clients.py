import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from pydantic import ValidationError

from bbe_admin.core.config import settings
from bbe_admin.core.logging import log_error, safe_map
from bbe_admin.core.services import get_admin_api, get_blob_storage, get_directory
from bbe_admin.core.templating import templates
from bbe_admin.generator.codeblocks import (
    PREVIEW_VARIANTS,
    VARIANTS,
    UnknownVariant,
    preview_document,
    render_code,
)
from bbe_admin.integrations.admin_api import AdminApiClient, AdminApiError
from bbe_admin.integrations.blob_storage import (
    BlobStorageClient,
    BlobStorageError,
    BlobValidationError,
    is_blob_url,
)
from bbe_admin.routers.auth import flash, pop_flashes, require_session
from bbe_admin.schemas.clients import (
    CURRENCY_OPTIONS,
    INTEGRATION_TYPES,
    LANGUAGE_OPTIONS,
    ClientStatus,
    NewClient,
)
from bbe_admin.services.client_table import STATUS_ORDER, ClientQuery, parse_sort, toggle_sort
from bbe_admin.services.clients import ClientDeleteError, ClientDirectory
from bbe_admin.services.preferences import PreferencesEditor

router = APIRouter(prefix="/clients", tags=["clients"])

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = ["name", "email", "integrationType", "status", "lastActive"]
EDITOR_TABS = ("edit", "code", "preview")


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


def _preferences_url(cuid: str, tab: str = "edit") -> str:
    return f"/clients/{cuid}/preferences?tab={tab}"


def get_editor(session: Dict[str, Any], cuid: str, api: AdminApiClient) -> PreferencesEditor:
    editors = session.setdefault("editors", {})
    editor = editors.get(cuid)
    if editor is None:
        editor = PreferencesEditor(cuid, api, cache_seconds=settings.PREFERENCES_CACHE_SECONDS)
        editors[cuid] = editor
    return editor


async def _loaded_editor(
    session: Dict[str, Any], cuid: str, api: AdminApiClient
) -> PreferencesEditor:
    editor = get_editor(session, cuid, api)
    await editor.load()
    if editor.client_data is None:
        raise HTTPException(status_code=404, detail=editor.error or "Client not found")
    return editor


# =========================
# Client list
# =========================

@router.get("", response_class=HTMLResponse)
async def list_clients(
    request: Request,
    search: str = "",
    status_filter: str = "all",
    integration: str = "all",
    sort: Optional[str] = None,
    page: int = 1,
    session: Dict[str, Any] = Depends(require_session),
    directory: ClientDirectory = Depends(get_directory),
):
    await directory.load()
    query = ClientQuery(
        search=search,
        status=status_filter,
        integration=integration,
        sort=parse_sort(sort),
        page=page,
        page_size=settings.CLIENT_PAGE_SIZE,
    )
    result = query.apply(directory.clients)
    sort_links = {
        column: ",".join(str(k) for k in toggle_sort(query.sort, column))
        for column in SORTABLE_COLUMNS
    }

    return templates.TemplateResponse(
        request,
        "clients.html",
        {
            "user_email": session["email"],
            "flashes": pop_flashes(session),
            "error": directory.error,
            "query": query,
            "result": result,
            "sort_links": sort_links,
            "stats": directory.stats(),
            "reachability": directory.reachability,
            "status_options": list(STATUS_ORDER),
            "integration_options": INTEGRATION_TYPES,
            "last_fetched_at": directory.last_fetched_at,
        },
    )


@router.post("/refresh")
async def refresh_clients(
    session: Dict[str, Any] = Depends(require_session),
    directory: ClientDirectory = Depends(get_directory),
):
    await directory.load(force=True)
    if directory.error:
        flash(session, "error", directory.error)
    else:
        flash(session, "success", f"Loaded {len(directory.clients)} clients.")
    return _redirect("/clients")


@router.post("/create")
async def create_client(
    request: Request,
    session: Dict[str, Any] = Depends(require_session),
    directory: ClientDirectory = Depends(get_directory),
):
    form = await request.form()
    logger.info(f"Create client form: {safe_map(dict(form))}")
    try:
        new_client = NewClient(
            name=str(form.get("name") or "").strip(),
            email=str(form.get("email") or "").strip(),
            integration=str(form.get("integration") or "guesty"),
            api_key=str(form.get("api_key") or "").strip(),
            client_id=str(form.get("client_id") or "").strip(),
            client_secret=str(form.get("client_secret") or "").strip(),
        )
    except ValidationError:
        flash(session, "error", "Name and a valid email are required.")
        return _redirect("/clients")

    try:
        await directory.create(new_client)
    except AdminApiError as e:
        log_error(logger, f"Create client failed: {e}")
        flash(session, "error", e.user_message)
        return _redirect("/clients")

    flash(session, "success", f"Client {new_client.name} created.")
    await directory.load(force=True)
    return _redirect("/clients")


@router.post("/delete")
async def delete_clients(
    request: Request,
    session: Dict[str, Any] = Depends(require_session),
    directory: ClientDirectory = Depends(get_directory),
):
    form = await request.form()
    cuids = [str(c) for c in form.getlist("cuids") if c]
    if not cuids:
        flash(session, "error", "Select at least one client to delete.")
        return _redirect("/clients")

    editors = session.get("editors", {})
    try:
        deleted = await directory.delete_many(cuids)
    except ClientDeleteError as e:
        log_error(logger, f"Delete clients failed: {e}")
        for cuid in e.deleted:
            editors.pop(cuid, None)
        flash(session, "error", f"{e.user_message} ({len(e.deleted)} of {len(cuids)} deleted)")
        return _redirect("/clients")

    for cuid in deleted:
        editors.pop(cuid, None)
    count = len(deleted)
    flash(session, "success", f"Deleted {count} client{'s' if count != 1 else ''}.")
    return _redirect("/clients")


# =========================
# Preferences editor
# =========================

@router.get("/{cuid}/preferences", response_class=HTMLResponse)
async def preferences_page(
    request: Request,
    cuid: str,
    tab: str = "edit",
    session: Dict[str, Any] = Depends(require_session),
    api: AdminApiClient = Depends(get_admin_api),
):
    editor = get_editor(session, cuid, api)
    await editor.load()
    client = editor.client_data
    tab = tab if tab in EDITOR_TABS else "edit"

    snippets = []
    if client is not None and tab == "code":
        snippets = [
            {
                "key": key,
                "title": title,
                "language": language,
                "code": render_code(key, client, settings.WIDGET_HOST_URL),
            }
            for key, (title, _, language) in VARIANTS.items()
        ]

    return templates.TemplateResponse(
        request,
        "preferences.html",
        {
            "user_email": session["email"],
            "flashes": pop_flashes(session),
            "cuid": cuid,
            "client": client,
            "error": editor.error,
            "has_unsaved_changes": editor.has_unsaved_changes,
            "tab": tab,
            "snippets": snippets,
            "preview_variants": [(k, VARIANTS[k][0]) for k in PREVIEW_VARIANTS],
            "currency_options": CURRENCY_OPTIONS,
            "language_options": LANGUAGE_OPTIONS,
            "status_options": [s.value for s in ClientStatus],
        },
        status_code=200 if client is not None else 502,
    )


@router.post("/{cuid}/preferences")
async def update_preferences(
    request: Request,
    cuid: str,
    session: Dict[str, Any] = Depends(require_session),
    api: AdminApiClient = Depends(get_admin_api),
):
    editor = await _loaded_editor(session, cuid, api)
    form = await request.form()
    fields = {k: v for k, v in form.items() if isinstance(v, str)}
    editor.apply_form(fields, [str(c) for c in form.getlist("currencies")])
    if editor.has_unsaved_changes:
        flash(session, "info", "Changes staged. Save to send them to the server.")
    return _redirect(_preferences_url(cuid))


@router.post("/{cuid}/preferences/save")
async def save_preferences(
    request: Request,
    cuid: str,
    session: Dict[str, Any] = Depends(require_session),
    api: AdminApiClient = Depends(get_admin_api),
    directory: ClientDirectory = Depends(get_directory),
):
    editor = await _loaded_editor(session, cuid, api)
    form = await request.form()
    if form.get("editor_form"):
        fields = {k: v for k, v in form.items() if isinstance(v, str)}
        editor.apply_form(fields, [str(c) for c in form.getlist("currencies")])

    try:
        await editor.save()
    except AdminApiError as e:
        log_error(logger, f"Save preferences failed for {cuid}: {e}")
        flash(session, "error", e.user_message)
        return _redirect(_preferences_url(cuid))

    directory.invalidate()
    flash(session, "success", "Preferences saved.")
    return _redirect(_preferences_url(cuid))


@router.post("/{cuid}/preferences/refresh")
async def refresh_preferences(
    cuid: str,
    session: Dict[str, Any] = Depends(require_session),
    api: AdminApiClient = Depends(get_admin_api),
):
    editor = get_editor(session, cuid, api)
    await editor.load(force=True)
    if editor.error:
        flash(session, "error", editor.error)
    else:
        flash(session, "success", "Preferences reloaded from the server.")
    return _redirect(_preferences_url(cuid))


@router.post("/{cuid}/preferences/todos")
async def update_todos(
    request: Request,
    cuid: str,
    session: Dict[str, Any] = Depends(require_session),
    api: AdminApiClient = Depends(get_admin_api),
):
    editor = await _loaded_editor(session, cuid, api)
    form = await request.form()
    action = form.get("action")
    todo_id = str(form.get("todo_id") or "")

    if action == "add":
        editor.add_todo(str(form.get("text") or ""))
    elif action == "toggle":
        editor.toggle_todo(todo_id)
    elif action == "remove":
        editor.remove_todo(todo_id)
    else:
        raise HTTPException(status_code=400, detail=f"Unknown todo action: {action}")

    return _redirect(_preferences_url(cuid) + "#todos")


@router.post("/{cuid}/preferences/image")
async def upload_image(
    cuid: str,
    file: UploadFile = File(...),
    session: Dict[str, Any] = Depends(require_session),
    api: AdminApiClient = Depends(get_admin_api),
    blob: BlobStorageClient = Depends(get_blob_storage),
):
    editor = await _loaded_editor(session, cuid, api)
    content = await file.read()
    try:
        uploaded = await blob.upload(
            file.filename or "image",
            content,
            file.content_type,
            old_url=editor.client_data.preferences.img_link,
        )
    except BlobValidationError as e:
        flash(session, "error", str(e))
        return _redirect(_preferences_url(cuid))
    except BlobStorageError as e:
        log_error(logger, f"Image upload failed for {cuid}: {e}")
        flash(session, "error", "Failed to upload file")
        return _redirect(_preferences_url(cuid))

    editor.set_image(uploaded["url"] or "")
    flash(session, "info", "Image uploaded. Save to keep it on the client record.")
    return _redirect(_preferences_url(cuid))


@router.post("/{cuid}/preferences/image/delete")
async def delete_image(
    cuid: str,
    session: Dict[str, Any] = Depends(require_session),
    api: AdminApiClient = Depends(get_admin_api),
    blob: BlobStorageClient = Depends(get_blob_storage),
):
    editor = await _loaded_editor(session, cuid, api)
    img_link = editor.client_data.preferences.img_link
    if is_blob_url(img_link):
        try:
            await blob.delete(img_link)
        except BlobStorageError as e:
            log_error(logger, f"Image delete failed for {cuid}: {e}")
            flash(session, "error", "Failed to delete file")
            return _redirect(_preferences_url(cuid))

    editor.set_image("")
    flash(session, "info", "Image removed. Save to keep the change.")
    return _redirect(_preferences_url(cuid))


@router.get("/{cuid}/preferences/code/{variant}", response_class=PlainTextResponse)
async def widget_code(
    cuid: str,
    variant: str,
    session: Dict[str, Any] = Depends(require_session),
    api: AdminApiClient = Depends(get_admin_api),
):
    editor = await _loaded_editor(session, cuid, api)
    try:
        code = render_code(variant, editor.client_data, settings.WIDGET_HOST_URL)
    except UnknownVariant:
        raise HTTPException(status_code=404, detail=f"Unknown code variant: {variant}")
    return PlainTextResponse(code)


@router.get("/{cuid}/preferences/preview/{variant}", response_class=HTMLResponse)
async def widget_preview(
    cuid: str,
    variant: str,
    session: Dict[str, Any] = Depends(require_session),
    api: AdminApiClient = Depends(get_admin_api),
):
    editor = await _loaded_editor(session, cuid, api)
    try:
        document = preview_document(variant, editor.client_data, settings.WIDGET_HOST_URL)
    except UnknownVariant:
        raise HTTPException(status_code=404, detail=f"No preview for variant: {variant}")
    return HTMLResponse(document)
