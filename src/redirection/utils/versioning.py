"""Schema version helpers."""

from packaging.version import Version

# Schema version this release of the plugin expects
TARGET_DB_VERSION = "2.4"


def is_older(version: str, target: str = TARGET_DB_VERSION) -> bool:
    """Check whether a stored schema version predates target.

    An empty version means the schema was never installed and is always
    older.

    Raises:
        packaging.version.InvalidVersion: If version is not a valid version string
    """
    if not version:
        return True
    return Version(version) < Version(target)


def is_newer(version: str, baseline: str) -> bool:
    """Check whether version is strictly greater than baseline (empty baseline = nothing)."""
    if not baseline:
        return True
    return Version(version) > Version(baseline)
