"""HTML rendering for the required plugins admin page and the credential prompt."""

from html import escape
from typing import List, Optional

from required_plugins.core.bulk_actions import ActionOutcome, ActivationResult, InstallStarted
from required_plugins.core.config import settings
from required_plugins.core.i18n import get_text
from required_plugins.core.list_table import PluginListTable, Row
from required_plugins.core.package_info import PackageInfo


def render_notice(outcome: Optional[ActionOutcome], lang: str = "en") -> str:
    if not isinstance(outcome, ActivationResult):
        return ""
    css_class = "error" if outcome.failed else "updated"
    return f'<div id="message" class="{css_class}"><p>{outcome.message(lang)}</p></div>'


def render_install_output(outcome: InstallStarted, lang: str = "en") -> str:
    items = "".join(
        f'<li class="{"success" if report.success else "error"}">{escape(report.message)}</li>'
        for report in outcome.results
    )
    return f'<div class="wrap"><h2>{escape(get_text("page_title", lang))}</h2><ul class="install-results">{items}</ul></div>'


def render_table(table: PluginListTable, rows: List[Row]) -> str:
    columns = table.get_columns()
    header = "".join(f'<th class="column-{key}">{label}</th>' for key, label in columns.items())

    if rows:
        body = "".join(
            "<tr>" + "".join(f'<td class="column-{key}">{table.render_cell(row, key)}</td>' for key in columns) + "</tr>"
            for row in rows
        )
    else:
        body = f'<tr class="no-items"><td colspan="{len(columns)}">{table.no_items()}</td></tr>'

    options = "".join(
        f'<option value="{escape(action)}">{escape(label)}</option>' for action, label in table.get_bulk_actions().items()
    )
    return (
        f'<form method="post" action="{escape(settings.PAGE_URL)}">'
        f'<div class="tablenav"><select name="action"><option value="-1"></option>{options}</select>'
        f'<input type="submit" class="button" value="{escape(get_text("apply", table.lang))}" /></div>'
        f'<table class="wp-list-table plugins"><thead><tr>{header}</tr></thead><tbody>{body}</tbody></table>'
        "</form>"
    )


def render_page(
    table: PluginListTable,
    rows: List[Row],
    outcome: Optional[ActionOutcome] = None,
    show_modal_script: bool = True,
) -> str:
    lang = table.lang
    parts = [f"<h2>{escape(get_text('page_title', lang))}</h2>", render_notice(outcome, lang)]
    if isinstance(outcome, InstallStarted):
        parts.append(render_install_output(outcome, lang))
    parts.append(render_table(table, rows))

    script = f'<script src="{escape(settings.MODAL_SCRIPT_URL)}"></script>' if show_modal_script else ""
    return _document(get_text("page_title", lang), "".join(parts), script)


def render_credentials_form(return_url: str, error: Optional[str] = None, lang: str = "en", hostname: str = "", username: str = "") -> str:
    error_html = f'<div class="error"><p>{escape(error)}</p></div>' if error else ""
    body = (
        f"<h2>{escape(get_text('credentials_title', lang))}</h2>{error_html}"
        f"<p>{escape(get_text('credentials_help', lang))}</p>"
        f'<form method="post" action="{escape(settings.CREDENTIALS_URL)}">'
        f'<input type="hidden" name="return_url" value="{escape(return_url)}" />'
        f'<label>{escape(get_text("credentials_hostname", lang))} <input type="text" name="hostname" value="{escape(hostname)}" /></label>'
        f'<label>{escape(get_text("credentials_username", lang))} <input type="text" name="username" value="{escape(username)}" /></label>'
        f'<label>{escape(get_text("credentials_password", lang))} <input type="password" name="password" value="" /></label>'
        f'<input type="submit" class="button" value="{escape(get_text("credentials_submit", lang))}" />'
        "</form>"
    )
    return _document(get_text("credentials_title", lang), body)


def render_fatal(message: str, lang: str = "en") -> str:
    return _document(get_text("page_title", lang), f'<div class="error"><p>{escape(message)}</p></div>')


def _document(title: str, body: str, head_extra: str = "") -> str:
    return (
        "<!DOCTYPE html><html><head>"
        f'<meta charset="utf-8" /><title>{escape(title)}</title>{head_extra}'
        f'</head><body><div class="required-plugins wrap">{body}</div></body></html>'
    )


def render_plugin_information(info: PackageInfo) -> str:
    details = [f"<h2>{escape(info.name or info.slug)}</h2>"]
    if info.version:
        details.append(f"<p>Version {escape(info.version)}</p>")
    if info.download_link:
        details.append(f'<p><a href="{escape(info.download_link)}">{escape(info.download_link)}</a></p>')
    return _document(info.name or info.slug, "".join(details))
