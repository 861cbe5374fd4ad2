from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./required_plugins.db"

    # Manifest of desired plugins
    PLUGIN_MANIFEST_PATH: str = "plugin_manifest.json"

    # Filesystem
    PLUGINS_DIR: str = "plugins"
    PACKAGES_DIR: str = "packages"
    PLUGIN_FILE_SUFFIX: str = ".php"
    FILESYSTEM_METHOD: Optional[str] = None  # 'direct' or 'ftp'; autodetected when unset
    FTP_PORT: int = 21

    # Public plugin repository
    PACKAGE_API_URL: str = "https://api.wordpress.org/plugins/info/1.2/"
    PUBLIC_REPO_URL: str = "http://wordpress.org/extend/plugins/"

    # Admin pages
    PAGE_URL: str = "/plugins/required/page"
    CREDENTIALS_URL: str = "/plugins/required/credentials"
    DASHBOARD_URL: str = "/"
    PLUGIN_INFO_URL: str = "/plugins/required/plugin-information"
    MODAL_SCRIPT_URL: str = "/static/thickbox.js"
    PER_PAGE: int = 100
    DEFAULT_LANGUAGE: str = "en"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )


settings = Settings()
