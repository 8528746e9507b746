# ==============================================================================
# Version Utilities
# ==============================================================================
"""
Version reported to brokers as client.software.version.
"""

from importlib.metadata import PackageNotFoundError, version


def get_streamtable_version() -> str:
    """Installed streamtable version, or the source version when not installed."""
    try:
        return version("streamtable")
    except PackageNotFoundError:
        return "0.1.0"

