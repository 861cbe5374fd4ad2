"""
Bulk Installer - downloads or locates plugin archives, unpacks them and writes the
plugin folder into the plugins directory, then records the plugin as installed
(inactive).
"""

import asyncio
import logging
import tempfile
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from required_plugins.core.config import settings
from required_plugins.core.credentials import FilesystemCredentials
from required_plugins.core.filesystem import FilesystemError
from required_plugins.core.http_utils import get_httpx_async_client
from required_plugins.core.i18n import get_text
from required_plugins.core.list_table import is_url
from required_plugins.models import InstalledPlugin

logger = logging.getLogger(__name__)


class InstallError(Exception):
    """A single plugin could not be installed."""


@dataclass
class InstallReport:
    name: str
    success: bool
    message: str
    file_path: Optional[str] = None


class Installer:
    def __init__(
        self,
        session: AsyncSession,
        plugins_dir: Optional[str] = None,
        packages_dir: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        lang: str = "en",
    ):
        self.session = session
        self.plugins_dir = Path(plugins_dir or settings.PLUGINS_DIR)
        self.packages_dir = Path(packages_dir or settings.PACKAGES_DIR)
        self._client = client
        self.lang = lang

    async def bulk_install(
        self, sources: List[str], names: List[str], credentials: FilesystemCredentials
    ) -> List[InstallReport]:
        """Install each source in turn. A failure is reported and the batch moves on."""
        reports = []
        for source, name in zip(sources, names):
            logger.info(f"Installing {name} from {source}")
            try:
                file_path = await self.install(source, name, credentials)
            except InstallError as e:
                logger.error(f"Install of {name} failed: {e}")
                reports.append(
                    InstallReport(name=name, success=False, message=get_text("install_failed", self.lang, name=name, error=e))
                )
                continue
            reports.append(
                InstallReport(
                    name=name,
                    success=True,
                    message=get_text("install_success", self.lang, name=name),
                    file_path=file_path,
                )
            )
        return reports

    async def install(self, source: str, name: str, credentials: FilesystemCredentials) -> str:
        with tempfile.TemporaryDirectory() as tmp:
            workdir = Path(tmp)
            archive = await self._fetch_package(source, workdir)
            folder, file_path = await asyncio.to_thread(self._unpack, archive, workdir / "unpacked")

            writer = credentials.get_writer(self.plugins_dir)
            try:
                await asyncio.to_thread(writer.write_tree, workdir / "unpacked" / folder, folder)
            except FilesystemError as e:
                raise InstallError(str(e)) from e

        await self._register(file_path, name, source)
        return file_path

    async def _fetch_package(self, source: str, workdir: Path) -> Path:
        if not is_url(source):
            archive = Path(source)
            if not archive.is_absolute():
                archive = self.packages_dir / archive
            if not archive.is_file():
                raise InstallError(f"Package not found: {source}")
            return archive

        archive = workdir / "package.zip"
        try:
            if self._client is not None:
                await self._download(self._client, source, archive)
            else:
                async with get_httpx_async_client(base_url=source) as client:
                    await self._download(client, source, archive)
        except httpx.HTTPError as e:
            raise InstallError(f"Download failed: {e}") from e
        return archive

    @staticmethod
    async def _download(client: httpx.AsyncClient, url: str, destination: Path):
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            with open(destination, "wb") as fh:
                async for chunk in response.aiter_bytes():
                    fh.write(chunk)

    def _unpack(self, archive: Path, destination: Path) -> Tuple[str, str]:
        """Extract ``archive`` and return (plugin folder, main plugin file path)."""
        if not zipfile.is_zipfile(archive):
            raise InstallError("Incompatible Archive.")

        try:
            with zipfile.ZipFile(archive) as zf:
                members = [m for m in zf.namelist() if not m.startswith("__MACOSX/")]
                for member in members:
                    parts = PurePosixPath(member).parts
                    if member.startswith("/") or ".." in parts:
                        raise InstallError(f"Unsafe path in archive: {member}")
                zf.extractall(destination, members=members)
        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            raise InstallError(f"Incompatible Archive. {e}") from e

        folders = {PurePosixPath(m).parts[0] for m in members if PurePosixPath(m).parts}
        if len(folders) != 1 or not (destination / next(iter(folders))).is_dir():
            raise InstallError("The package must contain a single plugin folder.")
        folder = folders.pop()

        suffix = settings.PLUGIN_FILE_SUFFIX
        candidates = sorted(p.name for p in (destination / folder).iterdir() if p.is_file() and p.name.endswith(suffix))
        if not candidates:
            raise InstallError("No valid plugins were found.")

        main_file = f"{folder}{suffix}" if f"{folder}{suffix}" in candidates else candidates[0]
        return folder, f"{folder}/{main_file}"

    async def _register(self, file_path: str, name: str, source: str):
        plugin = await self.session.get(InstalledPlugin, file_path)
        if plugin is None:
            plugin = InstalledPlugin(file_path=file_path, name=name)
        plugin.source = source
        self.session.add(plugin)
        await self.session.commit()
        logger.info(f"Registered {name} as installed at {file_path}")
