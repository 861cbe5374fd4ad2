"""
Bulk Action Processor - decodes a bulk submission into a BulkSelection and runs the
install or activate flow over it.

A selection arrives in one of two shapes:
  * form submission: repeated ``plugin`` fields, each ``file_path,source_url,name``
  * query string after the credential form redirect: three parallel comma-joined
    lists ``plugins``, ``plugin_sources`` and ``plugin_names`` (items percent-encoded)
Both decode to the same BulkSelection; nothing past the decoders looks at the raw request.
"""

import logging
from dataclasses import asdict, dataclass, field
from html import escape
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union
from urllib.parse import quote, unquote, urlencode

from required_plugins.core.activation import ActivationError, ActivationService
from required_plugins.core.config import settings
from required_plugins.core.credentials import CredentialStore, NeedCredentials
from required_plugins.core.i18n import get_text
from required_plugins.core.installer import Installer, InstallReport
from required_plugins.core.list_table import ACTIVATE_PLUGIN, BULK_ACTIVATE, BULK_INSTALL, INSTALL_PLUGIN
from required_plugins.core.package_info import PackageInfoService
from required_plugins.core.registry import PluginRegistry
from required_plugins.models import REPO_SOURCE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectedPlugin:
    file_path: str
    source_url: str
    display_name: str


@dataclass(frozen=True)
class BulkSelection:
    plugins: Tuple[SelectedPlugin, ...] = ()

    @classmethod
    def of(cls, plugins: Iterable[SelectedPlugin]) -> "BulkSelection":
        unique = []
        for plugin in plugins:
            if plugin not in unique:
                unique.append(plugin)
        return cls(tuple(unique))

    @classmethod
    def from_form(cls, values: Iterable[str]) -> "BulkSelection":
        """Decode ``file_path,source_url,name`` triples. Names may contain commas."""
        plugins = []
        for value in values:
            if not value:
                continue
            parts = value.split(",", 2)
            file_path = parts[0]
            source_url = parts[1] if len(parts) > 1 and parts[1] else REPO_SOURCE
            name = parts[2] if len(parts) > 2 and parts[2] else file_path
            plugins.append(SelectedPlugin(file_path, source_url, name))
        return cls.of(plugins)

    @classmethod
    def from_query(
        cls, plugins: Optional[str], sources: Optional[str] = None, names: Optional[str] = None
    ) -> "BulkSelection":
        """Decode the three parallel lists. Missing sources fall back to the public repository, missing names to the path."""
        paths = _split_list(plugins)
        source_list = _split_list(sources)
        name_list = _split_list(names)

        selected = []
        for i, file_path in enumerate(paths):
            source_url = source_list[i] if i < len(source_list) and source_list[i] else REPO_SOURCE
            name = name_list[i] if i < len(name_list) and name_list[i] else file_path
            selected.append(SelectedPlugin(file_path, source_url, name))
        return cls.of(selected)

    def to_query_params(self) -> Dict[str, str]:
        return {
            "plugins": _join_list(p.file_path for p in self.plugins),
            "plugin_sources": _join_list(p.source_url for p in self.plugins),
            "plugin_names": _join_list(p.display_name for p in self.plugins),
        }

    def filter(self, predicate: Callable[[SelectedPlugin], bool]) -> "BulkSelection":
        return BulkSelection(tuple(p for p in self.plugins if predicate(p)))

    @property
    def file_paths(self) -> List[str]:
        return [p.file_path for p in self.plugins]

    @property
    def names(self) -> List[str]:
        return [p.display_name for p in self.plugins]

    def __iter__(self) -> Iterator[SelectedPlugin]:
        return iter(self.plugins)

    def __len__(self) -> int:
        return len(self.plugins)


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [unquote(item) for item in value.split(",")]


def _join_list(values: Iterable[str]) -> str:
    return ",".join(quote(v, safe="") for v in values)


def looks_like_plugin_file(file_path: str) -> bool:
    """Installed plugins are addressed by their main file; uninstalled ones only by slug."""
    return file_path.endswith(settings.PLUGIN_FILE_SUFFIX)


def decode_install_selection(query: Mapping[str, str], form_values: Iterable[str]) -> BulkSelection:
    if query.get("plugins"):
        return BulkSelection.from_query(query.get("plugins"), query.get("plugin_sources"), query.get("plugin_names"))
    return BulkSelection.from_form(form_values)


# ============================================================================
# Outcomes
# ============================================================================


@dataclass
class NoAction:
    kind: str = field(default="none", init=False)


@dataclass
class InstallStarted:
    results: List[InstallReport]
    kind: str = field(default="install_started", init=False)


@dataclass
class InstallNeedsCredentials:
    form_url: str
    return_url: str
    error: Optional[str] = None
    kind: str = field(default="needs_credentials", init=False)


@dataclass
class ActivationResult:
    succeeded: List[str]
    failed: Optional[str] = None
    kind: str = field(default="activation", init=False)

    def message(self, lang: str = "en") -> str:
        if self.failed:
            return escape(self.failed)
        key = "activated_single" if len(self.succeeded) == 1 else "activated_plural"
        return f"{get_text(key, lang)} {format_plugin_names(self.succeeded)}"


ActionOutcome = Union[NoAction, InstallStarted, InstallNeedsCredentials, ActivationResult]


def format_plugin_names(names: List[str]) -> str:
    """``A`` / ``A and B.`` / ``A, B and C.`` with every name in bold."""
    bold = [f"<strong>{escape(name)}</strong>" for name in names]
    if len(bold) <= 1:
        return "".join(bold)
    return f"{', '.join(bold[:-1])} and {bold[-1]}."


def outcome_to_dict(outcome: ActionOutcome, lang: str = "en") -> dict:
    data = asdict(outcome)
    data["outcome"] = data.pop("kind")
    if isinstance(outcome, ActivationResult):
        data["message"] = outcome.message(lang)
    return data


# ============================================================================
# Processor
# ============================================================================


class BulkActionProcessor:
    def __init__(
        self,
        registry: PluginRegistry,
        credentials: CredentialStore,
        package_info: PackageInfoService,
        installer: Installer,
        activation: ActivationService,
        lang: str = "en",
    ):
        self.registry = registry
        self.credentials = credentials
        self.package_info = package_info
        self.installer = installer
        self.activation = activation
        self.lang = lang

    async def process_submission(
        self, action: Optional[str], query: Mapping[str, str], form_values: Iterable[str] = ()
    ) -> ActionOutcome:
        if action == BULK_INSTALL:
            return await self.install(decode_install_selection(query, form_values))
        if action == BULK_ACTIVATE:
            return await self.activate(BulkSelection.from_form(form_values))
        return NoAction()

    async def process_single_action(self, query: Mapping[str, str]) -> ActionOutcome:
        """Handle the Install/Activate hover links of a single row."""
        action = query.get("plugin_action")
        file_path = query.get("plugin")
        if action not in (INSTALL_PLUGIN, ACTIVATE_PLUGIN) or not file_path:
            return NoAction()

        selection = BulkSelection.of(
            [
                SelectedPlugin(
                    file_path=file_path,
                    source_url=query.get("plugin_source") or REPO_SOURCE,
                    display_name=query.get("plugin_name") or file_path,
                )
            ]
        )
        if action == INSTALL_PLUGIN:
            return await self.install(selection)
        return await self.activate(selection)

    async def install(self, selection: BulkSelection) -> ActionOutcome:
        selection = selection.filter(lambda p: not looks_like_plugin_file(p.file_path))
        if not selection:
            return NoAction()

        return_url = f"{settings.PAGE_URL}?{urlencode({'action': BULK_INSTALL, **selection.to_query_params()})}"
        credentials = await self.credentials.ensure_credentials(return_url)
        if isinstance(credentials, NeedCredentials):
            return InstallNeedsCredentials(form_url=credentials.form_url, return_url=return_url, error=credentials.error)

        # Every source is resolved before anything is installed; PackageInfoError aborts the batch
        resolved = await self.resolve_sources(selection)

        to_install = [(plugin, source) for plugin, source in resolved if source]
        reports = iter(
            await self.installer.bulk_install(
                [source for _, source in to_install],
                [plugin.display_name for plugin, _ in to_install],
                credentials,
            )
        )

        results = []
        for plugin, source in resolved:
            if source:
                results.append(next(reports))
            else:
                results.append(
                    InstallReport(
                        name=plugin.display_name,
                        success=False,
                        message=get_text("install_unresolved", self.lang, name=plugin.display_name),
                    )
                )
        return InstallStarted(results=results)

    async def resolve_sources(self, selection: BulkSelection) -> List[Tuple[SelectedPlugin, Optional[str]]]:
        resolved = []
        for plugin in selection:
            if plugin.source_url != REPO_SOURCE:
                resolved.append((plugin, plugin.source_url))
                continue

            spec = self.registry.find(name=plugin.display_name, file_path=plugin.file_path)
            slug = spec.slug if spec else plugin.file_path
            info = await self.package_info.fetch(slug)
            if not info.download_link:
                logger.warning(f"No download link for {plugin.display_name} ({slug})")
            resolved.append((plugin, info.download_link))
        return resolved

    async def activate(self, selection: BulkSelection) -> ActionOutcome:
        # Plugins that haven't been installed yet won't have a plugin file path
        selection = selection.filter(lambda p: looks_like_plugin_file(p.file_path))
        if not selection:
            return NoAction()

        paths = selection.file_paths
        try:
            await self.activation.activate(paths)
            result = ActivationResult(succeeded=selection.names)
        except ActivationError as e:
            succeeded = [p.display_name for p in selection if p.file_path in e.activated]
            result = ActivationResult(succeeded=succeeded, failed=e.message)

        await self.activation.remove_recently_activated(paths)
        return result
