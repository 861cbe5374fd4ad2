"""
Writers that place an unpacked plugin folder into the plugins directory, either
directly or over FTP when the service cannot write there itself.
"""

import ftplib
import logging
import os
import shutil
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class FilesystemError(Exception):
    """Writing into the plugins directory failed."""


class DirectWriter:
    def __init__(self, root: Path):
        self.root = Path(root)

    def write_tree(self, source: Path, folder: str):
        destination = self.root / folder
        if destination.exists():
            raise FilesystemError("Destination folder already exists.")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            shutil.copytree(source, destination)
        except OSError as e:
            raise FilesystemError(f"Could not copy files: {e}") from e


class FtpWriter:
    def __init__(self, hostname: str, username: str, password: str, root: str, port: int = 21):
        self.hostname = hostname
        self.username = username
        self.password = password
        self.root = root
        self.port = port

    def _connect(self) -> ftplib.FTP:
        ftp = ftplib.FTP()
        ftp.connect(self.hostname, self.port, timeout=30)
        ftp.login(self.username, self.password)
        return ftp

    def verify(self) -> Optional[str]:
        """Returns an error message when the server refuses the connection, else None."""
        try:
            ftp = self._connect()
        except (ftplib.Error, OSError) as e:
            logger.warning(f"FTP connection to {self.hostname}:{self.port} failed: {e}")
            return f"Failed to connect to FTP Server {self.hostname}:{self.port}"
        ftp.quit()
        return None

    def write_tree(self, source: Path, folder: str):
        try:
            ftp = self._connect()
        except (ftplib.Error, OSError) as e:
            raise FilesystemError(f"Failed to connect to FTP Server {self.hostname}:{self.port}") from e

        try:
            ftp.cwd(self.root)
            if folder in ftp.nlst():
                raise FilesystemError("Destination folder already exists.")
            for directory, subdirs, files in os.walk(source):
                relative = Path(directory).relative_to(source)
                remote_dir = "/".join([folder, *relative.parts])
                ftp.mkd(remote_dir)
                for filename in files:
                    with open(Path(directory) / filename, "rb") as fh:
                        ftp.storbinary(f"STOR {remote_dir}/{filename}", fh)
        except (ftplib.Error, OSError) as e:
            raise FilesystemError(f"Could not copy files over FTP: {e}") from e
        finally:
            try:
                ftp.quit()
            except (ftplib.Error, OSError):
                ftp.close()
