import os
import tempfile

# ============================================================================
# Test Environment Configuration
# ============================================================================
# This file MUST be imported before any required_plugins modules so that the
# service configures itself for testing (e.g. using a test DB).

# Use file-based sqlite for sharing between app and test fixtures
TEST_DB_DIR = tempfile.mkdtemp()
TEST_DB_PATH = os.path.join(TEST_DB_DIR, "test.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["FILESYSTEM_METHOD"] = "direct"
os.environ["PLUGINS_DIR"] = os.path.join(TEST_DB_DIR, "plugins")
os.environ["PACKAGES_DIR"] = os.path.join(TEST_DB_DIR, "packages")
os.environ["PLUGIN_MANIFEST_PATH"] = os.path.join(TEST_DB_DIR, "plugin_manifest.json")

__all__ = ["TEST_DB_DIR", "TEST_DB_PATH"]
