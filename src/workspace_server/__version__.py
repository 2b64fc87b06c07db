"""Version information for google-workspace-server."""

from importlib.metadata import PackageNotFoundError, version


def _get_version() -> str:
    """Get version from installed distribution metadata or fall back to hardcoded."""
    try:
        return version("google-workspace-server")
    except PackageNotFoundError:
        # Running from a source checkout without an install
        return "0.1.0"


__version__ = _get_version()
