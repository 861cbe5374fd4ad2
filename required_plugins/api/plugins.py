import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from required_plugins.core.activation import ActivationService
from required_plugins.core.auth import require_admin
from required_plugins.core.bulk_actions import BulkActionProcessor, InstallNeedsCredentials, outcome_to_dict
from required_plugins.core.config import settings
from required_plugins.core.credentials import CredentialStore
from required_plugins.core.db import get_session
from required_plugins.core.i18n import get_text, resolve_language
from required_plugins.core.installer import Installer
from required_plugins.core.list_table import PluginListTable
from required_plugins.core.package_info import PackageInfoError, PackageInfoService
from required_plugins.core.page import (
    render_credentials_form,
    render_fatal,
    render_page,
    render_plugin_information,
)
from required_plugins.core.registry import PluginRegistry, get_registry
from required_plugins.models import User

router = APIRouter(prefix="/plugins/required", tags=["Required Plugins"])
logger = logging.getLogger(__name__)


def build_processor(session: AsyncSession, registry: PluginRegistry, lang: str) -> BulkActionProcessor:
    return BulkActionProcessor(
        registry=registry,
        credentials=CredentialStore(session),
        package_info=PackageInfoService(),
        installer=Installer(session, lang=lang),
        activation=ActivationService(session),
        lang=lang,
    )


def _form_action(form) -> Optional[str]:
    """The bulk action select appears above and below the table; '-1' means none chosen."""
    for key in ("action", "action2"):
        value = form.get(key)
        if value and value != "-1":
            return value
    return None


def _safe_return_url(url: Optional[str]) -> str:
    if url and url.startswith("/") and not url.startswith("//"):
        return url
    return settings.PAGE_URL


@router.get("")
async def list_required_plugins(
    session: AsyncSession = Depends(get_session),
    registry: PluginRegistry = Depends(get_registry),
    current_user: User = Depends(require_admin),
):
    """List the required and recommended plugins that still need installing or activating."""
    lang = resolve_language(current_user, settings.DEFAULT_LANGUAGE)
    table = PluginListTable(registry, lang)
    rows = await table.prepare_items(session)
    return {
        "columns": table.get_columns(),
        "bulk_actions": table.get_bulk_actions(),
        "rows": [asdict(row) for row in rows],
        "no_items": table.no_items() if not rows else None,
    }


@router.post("/bulk")
async def bulk_action(
    request: Request,
    session: AsyncSession = Depends(get_session),
    registry: PluginRegistry = Depends(get_registry),
    current_user: User = Depends(require_admin),
):
    """Run a bulk install or activate submission and report the outcome as JSON."""
    lang = resolve_language(current_user, settings.DEFAULT_LANGUAGE)
    form = await request.form()
    processor = build_processor(session, registry, lang)
    try:
        outcome = await processor.process_submission(_form_action(form), request.query_params, form.getlist("plugin"))
    except PackageInfoError as e:
        logger.error(f"Bulk install aborted: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=get_text("oops", lang))
    return outcome_to_dict(outcome, lang)


@router.get("/page", response_class=HTMLResponse)
async def required_plugins_page(
    request: Request,
    session: AsyncSession = Depends(get_session),
    registry: PluginRegistry = Depends(get_registry),
    current_user: User = Depends(require_admin),
):
    """Render the admin page, first running a row action or a bulk install resumed after the credential prompt."""
    lang = resolve_language(current_user, settings.DEFAULT_LANGUAGE)
    processor = build_processor(session, registry, lang)
    query = request.query_params
    if query.get("plugin_action"):
        pending = processor.process_single_action(query)
    else:
        pending = processor.process_submission(query.get("action"), query)
    return await _render(pending, session, registry, current_user, lang)


@router.post("/page", response_class=HTMLResponse)
async def submit_required_plugins_page(
    request: Request,
    session: AsyncSession = Depends(get_session),
    registry: PluginRegistry = Depends(get_registry),
    current_user: User = Depends(require_admin),
):
    """Process the bulk action form, then render the admin page."""
    lang = resolve_language(current_user, settings.DEFAULT_LANGUAGE)
    form = await request.form()
    processor = build_processor(session, registry, lang)
    pending = processor.process_submission(_form_action(form), request.query_params, form.getlist("plugin"))
    return await _render(pending, session, registry, current_user, lang)


async def _render(pending, session: AsyncSession, registry: PluginRegistry, current_user: User, lang: str) -> HTMLResponse:
    try:
        outcome = await pending
    except PackageInfoError as e:
        logger.error(f"Bulk install aborted: {e}")
        return HTMLResponse(render_fatal(get_text("oops", lang), lang), status_code=status.HTTP_502_BAD_GATEWAY)

    if isinstance(outcome, InstallNeedsCredentials):
        return HTMLResponse(render_credentials_form(outcome.return_url, outcome.error, lang))

    table = PluginListTable(registry, lang)
    rows = await table.prepare_items(session)
    return HTMLResponse(render_page(table, rows, outcome, show_modal_script=not current_user.dismissed_plugin_notice))


@router.get("/credentials", response_class=HTMLResponse)
async def credentials_form(
    return_url: str = Query(settings.PAGE_URL),
    error: Optional[str] = Query(None),
    current_user: User = Depends(require_admin),
):
    """Prompt for the connection details needed to write into the plugins directory."""
    lang = resolve_language(current_user, settings.DEFAULT_LANGUAGE)
    return HTMLResponse(render_credentials_form(_safe_return_url(return_url), error, lang))


@router.post("/credentials")
async def save_credentials(
    hostname: str = Form(...),
    username: str = Form(...),
    password: str = Form(...),
    return_url: str = Form(settings.PAGE_URL),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    """Store filesystem credentials and resume the pending action."""
    await CredentialStore(session).save(hostname=hostname, username=username, password=password)
    return RedirectResponse(_safe_return_url(return_url), status_code=status.HTTP_303_SEE_OTHER)


@router.post("/dismiss")
async def dismiss_notice(session: AsyncSession = Depends(get_session), current_user: User = Depends(require_admin)):
    """Stop loading the plugin info modal for this admin."""
    current_user.dismissed_plugin_notice = True
    session.add(current_user)
    await session.commit()
    return {"status": "dismissed"}


@router.get("/plugin-information", response_class=HTMLResponse)
async def plugin_information(plugin: str = Query(...), current_user: User = Depends(require_admin)):
    """Modal body for the "more info" link of public repository plugins."""
    lang = resolve_language(current_user, settings.DEFAULT_LANGUAGE)
    try:
        info = await PackageInfoService().fetch(plugin)
    except PackageInfoError as e:
        logger.error(f"Plugin information lookup failed: {e}")
        return HTMLResponse(render_fatal(get_text("oops", lang), lang), status_code=status.HTTP_502_BAD_GATEWAY)
    return HTMLResponse(render_plugin_information(info))
