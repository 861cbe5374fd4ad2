from typing import Optional

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    __tablename__ = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True)
    api_key: str = Field(unique=True, index=True)
    role: str = Field(default="user")  # 'admin', 'user'
    language: str = Field(default="en")  # 'en', 'zh'

    # Once dismissed, the plugin info modal script is no longer loaded on the admin page
    dismissed_plugin_notice: bool = Field(default=False)
