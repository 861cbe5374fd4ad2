from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class FilesystemCredential(SQLModel, table=True):
    """
    Credentials used to write into the plugins directory when it is not
    directly writable by the service.
    """

    __tablename__ = "filesystem_credential"

    id: Optional[int] = Field(default=None, primary_key=True)
    connection_type: str = Field(default="ftp")
    hostname: str
    username: str
    encrypted_password: str = Field(description="Fernet encrypted password")
    updated_at: datetime = Field(default_factory=datetime.utcnow)
