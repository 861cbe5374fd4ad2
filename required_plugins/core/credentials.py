"""
Filesystem credentials for writing into the plugins directory.

When the service can write to the plugins directory itself no credentials are
needed. Otherwise FTP credentials are collected through a form, stored encrypted,
and checked before every install batch.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from required_plugins.core.config import settings
from required_plugins.core.filesystem import DirectWriter, FtpWriter
from required_plugins.core.security import decrypt_secret, encrypt_secret
from required_plugins.models import FilesystemCredential

logger = logging.getLogger(__name__)

DIRECT = "direct"
FTP = "ftp"


@dataclass
class FilesystemCredentials:
    method: str
    hostname: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    port: int = 21

    def get_writer(self, plugins_dir: Path) -> Union[DirectWriter, FtpWriter]:
        if self.method == DIRECT:
            return DirectWriter(plugins_dir)
        return FtpWriter(self.hostname, self.username, self.password, root=str(plugins_dir), port=self.port)


@dataclass
class NeedCredentials:
    """Credentials must be collected before installing; ``form_url`` renders the prompt."""

    form_url: str
    error: Optional[str] = None


def split_hostname(hostname: str, default_port: int) -> tuple:
    """``example.com:2121`` -> (``example.com``, 2121)."""
    host, _, port = hostname.partition(":")
    if port.isdigit():
        return host, int(port)
    return hostname, default_port


class CredentialStore:
    def __init__(self, session: AsyncSession, plugins_dir: Optional[str] = None):
        self.session = session
        self.plugins_dir = Path(plugins_dir or settings.PLUGINS_DIR)

    def filesystem_method(self) -> str:
        if settings.FILESYSTEM_METHOD:
            return settings.FILESYSTEM_METHOD

        try:
            self.plugins_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.info(f"Cannot create plugins directory {self.plugins_dir}: {e}")
            return FTP
        return DIRECT if os.access(self.plugins_dir, os.W_OK) else FTP

    def form_url(self, return_url: str) -> str:
        return f"{settings.CREDENTIALS_URL}?{urlencode({'return_url': return_url})}"

    async def get_stored(self) -> Optional[FilesystemCredentials]:
        result = await self.session.execute(select(FilesystemCredential).order_by(FilesystemCredential.id.desc()))
        stored = result.scalars().first()
        if not stored:
            return None

        host, port = split_hostname(stored.hostname, settings.FTP_PORT)
        return FilesystemCredentials(
            method=stored.connection_type,
            hostname=host,
            username=stored.username,
            password=decrypt_secret(stored.encrypted_password),
            port=port,
        )

    async def save(self, hostname: str, username: str, password: str, connection_type: str = FTP) -> FilesystemCredential:
        result = await self.session.execute(select(FilesystemCredential))
        stored = result.scalars().first()
        if stored is None:
            stored = FilesystemCredential(hostname=hostname, username=username, encrypted_password="")

        stored.connection_type = connection_type
        stored.hostname = hostname
        stored.username = username
        stored.encrypted_password = encrypt_secret(password)
        stored.updated_at = datetime.utcnow()

        self.session.add(stored)
        await self.session.commit()
        await self.session.refresh(stored)
        logger.info(f"Stored {connection_type} credentials for {username}@{hostname}")
        return stored

    async def ensure_credentials(self, return_url: str) -> Union[FilesystemCredentials, NeedCredentials]:
        method = self.filesystem_method()
        if method == DIRECT:
            return FilesystemCredentials(method=DIRECT)

        credentials = await self.get_stored()
        if credentials is None:
            logger.info("Filesystem credentials required before installing plugins")
            return NeedCredentials(form_url=self.form_url(return_url))

        writer = credentials.get_writer(self.plugins_dir)
        error = await asyncio.to_thread(writer.verify)
        if error:
            return NeedCredentials(form_url=self.form_url(return_url), error=error)
        return credentials
