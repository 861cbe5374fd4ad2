from .credential import FilesystemCredential
from .installed_plugin import InstalledPlugin
from .plugin_spec import REPO_SOURCE, PluginSpec
from .settings import SystemSetting
from .user import User

__all__ = [
    "User",
    "InstalledPlugin",
    "FilesystemCredential",
    "SystemSetting",
    "PluginSpec",
    "REPO_SOURCE",
]
