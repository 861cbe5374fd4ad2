"""
Plugin Registry - desired plugins from the manifest joined with the installed-plugin table.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from required_plugins.core.config import settings
from required_plugins.models import InstalledPlugin, PluginSpec

logger = logging.getLogger(__name__)


class ManifestError(Exception):
    """The plugin manifest exists but cannot be read."""


class InstalledPluginIndex:
    """Snapshot of installed plugins keyed by main file path."""

    def __init__(self, plugins: Optional[Dict[str, InstalledPlugin]] = None):
        self._plugins = dict(plugins or {})

    @classmethod
    def from_plugins(cls, plugins: List[InstalledPlugin]) -> "InstalledPluginIndex":
        return cls({p.file_path: p for p in plugins})

    def __contains__(self, file_path: str) -> bool:
        return file_path in self._plugins

    def __iter__(self) -> Iterator[str]:
        return iter(self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)

    def get(self, file_path: str) -> Optional[InstalledPlugin]:
        return self._plugins.get(file_path)

    def is_active(self, file_path: str) -> bool:
        plugin = self._plugins.get(file_path)
        return bool(plugin and plugin.active)

    def is_inactive(self, file_path: str) -> bool:
        plugin = self._plugins.get(file_path)
        return plugin is not None and not plugin.active

    def find_by_folder(self, folder: str) -> Optional[str]:
        """Return the file path of the installed plugin living in ``folder``, if any."""
        for file_path in sorted(self._plugins):
            if file_path.split("/", 1)[0] == folder:
                return file_path
        return None


class PluginRegistry:
    """
    Desired plugins for this site. Built once per request and passed explicitly
    to the list table and the bulk action processor.
    """

    def __init__(self, manifest_path: Optional[str] = None, plugins: Optional[List[PluginSpec]] = None):
        self.manifest_path = Path(manifest_path or settings.PLUGIN_MANIFEST_PATH)
        self._plugins = list(plugins) if plugins is not None else None

    def _load_manifest(self) -> List[PluginSpec]:
        if not self.manifest_path.exists():
            logger.warning(f"Plugin manifest not found at {self.manifest_path}")
            return []

        try:
            with open(self.manifest_path, "r", encoding="utf-8") as f:
                entries = json.load(f)
            plugins = [PluginSpec(**entry) for entry in entries]
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.error(f"Failed to read plugin manifest {self.manifest_path}: {e}")
            raise ManifestError(f"Invalid plugin manifest: {e}") from e

        seen = set()
        for plugin in plugins:
            if plugin.name in seen:
                logger.warning(f"Duplicate plugin name in manifest: {plugin.name}")
            seen.add(plugin.name)
        return plugins

    @property
    def plugins(self) -> List[PluginSpec]:
        if self._plugins is None:
            self._plugins = self._load_manifest()
        return self._plugins

    def list_desired_plugins(self, installed: Optional[InstalledPluginIndex] = None) -> List[PluginSpec]:
        """
        Desired plugins with file paths resolved. A plugin whose declared file path
        is missing or not installed takes the path of the installed plugin in its
        slug folder, otherwise the bare slug.
        """
        resolved = []
        for plugin in self.plugins:
            if plugin.file_path and (installed is None or plugin.file_path in installed):
                resolved.append(plugin)
                continue
            file_path = installed.find_by_folder(plugin.slug) if installed is not None else None
            resolved.append(plugin.model_copy(update={"file_path": file_path or plugin.slug}))
        return resolved

    async def list_installed_plugins(self, session: AsyncSession) -> InstalledPluginIndex:
        result = await session.execute(select(InstalledPlugin))
        return InstalledPluginIndex.from_plugins(list(result.scalars().all()))

    def get_plugin_data_from_name(self, name: str, field: str = "slug") -> Optional[Any]:
        """Look up ``field`` of the plugin registered as ``name``; None when unknown."""
        for plugin in self.plugins:
            if plugin.name == name:
                return getattr(plugin, field, None)
        return None

    def find(self, name: Optional[str] = None, file_path: Optional[str] = None) -> Optional[PluginSpec]:
        for plugin in self.plugins:
            if name is not None and plugin.name == name:
                return plugin
        for plugin in self.plugins:
            if file_path is None:
                break
            if file_path in (plugin.file_path, plugin.slug) or file_path.split("/", 1)[0] == plugin.slug:
                return plugin
        return None


def get_registry() -> PluginRegistry:
    """FastAPI dependency: a fresh registry per request."""
    return PluginRegistry()
