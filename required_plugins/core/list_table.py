"""
Plugin List Table - turns the desired plugins and the installed-plugin snapshot into
table rows and renders their cells.

Rows are rebuilt on every render and never persisted. Active plugins are not listed,
Required plugins come before Recommended ones, manifest order is kept within each group.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from html import escape
from typing import Callable, Dict, List, Optional
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from required_plugins.core.config import settings
from required_plugins.core.i18n import get_text
from required_plugins.core.registry import InstalledPluginIndex, PluginRegistry
from required_plugins.models import PluginSpec

logger = logging.getLogger(__name__)

HTTP_URL = re.compile(r"^https?://")

BULK_INSTALL = "bulk-install"
BULK_ACTIVATE = "bulk-activate"
INSTALL_PLUGIN = "install-plugin"
ACTIVATE_PLUGIN = "activate-plugin"


class PluginStatus(str, Enum):
    not_installed = "not_installed"
    inactive = "inactive"


@dataclass(frozen=True)
class Row:
    plugin_link_html: str
    source_label: str
    type_label: str
    status_label: str
    file_path: str
    source_url: str
    slug: str
    display_name: str
    required: bool
    status: PluginStatus


def is_url(value: Optional[str]) -> bool:
    return bool(value) and HTTP_URL.match(value) is not None


def render_plugin_link(spec: PluginSpec) -> str:
    name = escape(spec.name)

    if is_url(spec.external_url):
        return f'<strong><a href="{escape(spec.external_url)}" title="{name}" target="_blank">{name}</a></strong>'

    if not spec.has_declared_source or spec.source.startswith(settings.PUBLIC_REPO_URL):
        query = urlencode(
            {
                "tab": "plugin-information",
                "plugin": spec.slug,
                "TB_iframe": "true",
                "width": "640",
                "height": "500",
            }
        )
        url = f"{settings.PLUGIN_INFO_URL}?{query}"
        return f'<strong><a href="{escape(url)}" class="thickbox" title="{name}">{name}</a></strong>'

    # Pre-packaged or private repository plugins have no public info page
    return f"<strong>{name}</strong>"


def source_label(spec: PluginSpec, lang: str = "en") -> str:
    if spec.external_url:
        return get_text("source_external", lang)
    if spec.has_declared_source:
        if is_url(spec.source):
            return get_text("source_private", lang)
        return get_text("source_packaged", lang)
    return get_text("source_public", lang)


def type_label(spec: PluginSpec, lang: str = "en") -> str:
    return get_text("type_required" if spec.required else "type_recommended", lang)


def build_rows(specs: List[PluginSpec], installed: InstalledPluginIndex, lang: str = "en") -> List[Row]:
    """Build the table rows: inactive or missing plugins only, Required block first."""
    required_rows = []
    recommended_rows = []

    for spec in specs:
        file_path = spec.file_path or spec.slug
        if file_path not in installed:
            # Uninstalled plugins are addressed by slug, never by a plugin file path
            file_path = installed.find_by_folder(spec.slug) or spec.slug
        if installed.is_active(file_path):
            continue

        if file_path not in installed:
            status = PluginStatus.not_installed
            status_text = get_text("status_not_installed", lang)
        else:
            status = PluginStatus.inactive
            status_text = get_text("status_inactive", lang)

        row = Row(
            plugin_link_html=render_plugin_link(spec),
            source_label=source_label(spec, lang),
            type_label=type_label(spec, lang),
            status_label=status_text,
            file_path=file_path,
            source_url=spec.source_url,
            slug=spec.slug,
            display_name=spec.name,
            required=spec.required,
            status=status,
        )
        (required_rows if spec.required else recommended_rows).append(row)

    return required_rows + recommended_rows


def checkbox_value(row: Row) -> str:
    """Bulk form value: ``file_path,source_url,display_name``."""
    return f"{row.file_path},{row.source_url},{row.display_name}"


def row_action_url(row: Row, action: str) -> str:
    query = urlencode(
        {
            "plugin_action": action,
            "plugin": row.file_path,
            "plugin_name": row.display_name,
            "plugin_source": row.source_url,
        }
    )
    return f"{settings.PAGE_URL}?{query}"


def column_cb(row: Row, lang: str = "en") -> str:
    return '<input type="checkbox" name="plugin" value="{}" id="{}" />'.format(
        escape(checkbox_value(row)), escape(row.display_name)
    )


def column_plugin(row: Row, lang: str = "en") -> str:
    name = row.display_name
    if row.status == PluginStatus.not_installed:
        link = '<a href="{}" title="{}">{}</a>'.format(
            escape(row_action_url(row, INSTALL_PLUGIN)),
            escape(get_text("action_install_title", lang, name=name)),
            get_text("action_install", lang),
        )
        action_class = "install"
    else:
        link = '<a href="{}" title="{}">{}</a>'.format(
            escape(row_action_url(row, ACTIVATE_PLUGIN)),
            escape(get_text("action_activate_title", lang, name=name)),
            get_text("action_activate", lang),
        )
        action_class = "activate"
    return f'{row.plugin_link_html} <div class="row-actions"><span class="{action_class}">{link}</span></div>'


def column_source(row: Row, lang: str = "en") -> str:
    return escape(row.source_label)


def column_type(row: Row, lang: str = "en") -> str:
    return escape(row.type_label)


def column_status(row: Row, lang: str = "en") -> str:
    return escape(row.status_label)


CELL_RENDERERS: Dict[str, Callable[[Row, str], str]] = {
    "cb": column_cb,
    "plugin": column_plugin,
    "source": column_source,
    "type": column_type,
    "status": column_status,
}


def render_cell(row: Row, column: str, lang: str = "en") -> str:
    renderer = CELL_RENDERERS.get(column)
    return renderer(row, lang) if renderer else ""


class PluginListTable:
    """Columns, bulk actions and rows for the required plugins admin page."""

    def __init__(self, registry: PluginRegistry, lang: str = "en"):
        self.registry = registry
        self.lang = lang
        self.items: List[Row] = []

    def get_columns(self) -> Dict[str, str]:
        return {
            "cb": '<input type="checkbox" />',
            "plugin": get_text("col_plugin", self.lang),
            "source": get_text("col_source", self.lang),
            "type": get_text("col_type", self.lang),
            "status": get_text("col_status", self.lang),
        }

    def get_bulk_actions(self) -> Dict[str, str]:
        return {
            BULK_INSTALL: get_text("bulk_install", self.lang),
            BULK_ACTIVATE: get_text("bulk_activate", self.lang),
        }

    def no_items(self) -> str:
        return get_text("no_items", self.lang, url=escape(settings.DASHBOARD_URL))

    def render_cell(self, row: Row, column: str) -> str:
        return render_cell(row, column, self.lang)

    async def prepare_items(self, session: AsyncSession) -> List[Row]:
        installed = await self.registry.list_installed_plugins(session)
        specs = self.registry.list_desired_plugins(installed)
        rows = build_rows(specs, installed, self.lang)
        if len(rows) > settings.PER_PAGE:
            logger.warning(f"{len(rows)} plugins listed, only the first {settings.PER_PAGE} are shown")
        self.items = rows[: settings.PER_PAGE]
        return self.items
