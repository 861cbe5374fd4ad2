"""
Shared test fixtures and configuration for the required plugins test suite.
"""

import tests.env_setup as env_setup  # noqa: F401, I001  must run before any service import

import io
import os
import shutil
import zipfile
from typing import AsyncGenerator, Dict

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

import required_plugins.core.db
from required_plugins.core.config import settings
from required_plugins.core.db import get_session
from required_plugins.core.registry import PluginRegistry, get_registry
from required_plugins.main import app as fastapi_app
from required_plugins.models import InstalledPlugin, PluginSpec, User
from tests.env_setup import TEST_DB_DIR, TEST_DB_PATH

# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
async def test_db() -> AsyncGenerator[AsyncSession, None]:
    """Provide a file-based SQLite database for testing."""
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)

    engine = create_async_engine(f"sqlite+aiosqlite:///{TEST_DB_PATH}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    original_engine = required_plugins.core.db.engine
    original_sessionmaker = required_plugins.core.db.AsyncSessionLocal
    required_plugins.core.db.engine = engine
    required_plugins.core.db.AsyncSessionLocal = async_session

    async with async_session() as session:
        yield session

    required_plugins.core.db.engine = original_engine
    required_plugins.core.db.AsyncSessionLocal = original_sessionmaker
    await engine.dispose()


@pytest.fixture
async def admin_user(test_db: AsyncSession) -> User:
    """Create an admin test user."""
    user = User(username="admin", role="admin", api_key="admin_key")
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest.fixture
async def test_user(test_db: AsyncSession) -> User:
    """Create a non-admin test user."""
    user = User(username="testuser", role="user", api_key="test_key")
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"X-API-Key": "admin_key"}


# ============================================================================
# Plugin Fixtures
# ============================================================================


@pytest.fixture
def plugin_specs():
    """A manifest covering every source kind."""
    return [
        PluginSpec(name="Zeta Forms", slug="zeta-forms", required=False),
        PluginSpec(name="Alpha Cache", slug="alpha-cache", required=True),
        PluginSpec(
            name="Members Area",
            slug="members-area",
            required=False,
            source="https://downloads.example.com/members-area.zip",
        ),
        PluginSpec(name="Slider Pro", slug="slider-pro", required=True, source="bundled/slider-pro.zip"),
        PluginSpec(name="SEO Toolkit", slug="seo-toolkit", external_url="https://seo.example.com/"),
    ]


@pytest.fixture
def registry(plugin_specs) -> PluginRegistry:
    return PluginRegistry(plugins=plugin_specs)


@pytest.fixture
async def installed_plugins(test_db: AsyncSession):
    """Alpha Cache installed but inactive, Zeta Forms installed and active."""
    plugins = [
        InstalledPlugin(file_path="alpha-cache/alpha-cache.php", name="Alpha Cache", active=False),
        InstalledPlugin(file_path="zeta-forms/zeta-forms.php", name="Zeta Forms", active=True),
    ]
    for plugin in plugins:
        test_db.add(plugin)
    await test_db.commit()
    return plugins


@pytest.fixture
def plugin_dirs(tmp_path, monkeypatch):
    """Point the plugins and packages directories at a temp location."""
    plugins_dir = tmp_path / "plugins"
    packages_dir = tmp_path / "packages"
    plugins_dir.mkdir()
    packages_dir.mkdir()
    monkeypatch.setattr(settings, "PLUGINS_DIR", str(plugins_dir))
    monkeypatch.setattr(settings, "PACKAGES_DIR", str(packages_dir))
    monkeypatch.setattr(settings, "FILESYSTEM_METHOD", "direct")
    return plugins_dir, packages_dir


def make_plugin_zip(folder: str, files: Dict[str, str] = None) -> bytes:
    """Build an in-memory plugin archive with a single top-level folder."""
    files = files or {f"{folder}.php": "<?php /* Plugin Name: Test */"}
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            zf.writestr(f"{folder}/{name}", content)
    return buffer.getvalue()


@pytest.fixture
def plugin_zip():
    return make_plugin_zip


# ============================================================================
# API Client Fixtures
# ============================================================================


@pytest.fixture
async def api_client(test_db: AsyncSession, registry: PluginRegistry) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Provide an async client bound to the FastAPI app with test overrides."""

    async def _get_test_session():
        yield test_db

    fastapi_app.dependency_overrides[get_session] = _get_test_session
    fastapi_app.dependency_overrides[get_registry] = lambda: registry

    transport = httpx.ASGITransport(app=fastapi_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    fastapi_app.dependency_overrides.clear()


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def test_env():
    """Cleanup test directories after session."""
    yield
    if os.path.exists(TEST_DB_DIR):
        shutil.rmtree(TEST_DB_DIR, ignore_errors=True)
