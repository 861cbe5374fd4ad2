from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class InstalledPlugin(SQLModel, table=True):
    """
    A plugin present in the plugins directory, keyed by its main file path
    relative to that directory (e.g. ``foo/foo.php``).
    """

    __tablename__ = "installed_plugin"

    file_path: str = Field(primary_key=True)
    name: str = Field(index=True, description="Display name of the plugin")
    version: Optional[str] = Field(default=None)
    source: Optional[str] = Field(default=None, description="Where the package was installed from")
    active: bool = Field(default=False, index=True)

    installed_at: datetime = Field(default_factory=datetime.utcnow)
    activated_at: Optional[datetime] = Field(default=None)
