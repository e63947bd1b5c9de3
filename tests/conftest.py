"""Global pytest fixtures and configuration."""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from redirection.services.option_store import OptionStore  # noqa: E402
from redirection.services.plan_provider import LatestDatabase, MigrationPlanProvider  # noqa: E402


@pytest.fixture
def store(tmp_path):
    """Option store backed by a temporary JSON file."""
    return OptionStore(str(tmp_path / "options.json"))


@pytest.fixture
def set_version(store):
    """Write the stored schema version."""

    def _set(version):
        store.set_plugin_options({"database": version})

    return _set


@pytest.fixture
def provider(store):
    """Plan provider using the redirection upgrade table."""
    return MigrationPlanProvider(store)


@pytest.fixture
def schema():
    """Schema collaborator for error snapshots."""
    return LatestDatabase()
