"""Version information for stackctl."""

from importlib import metadata


def get_version() -> str:
    """Get the installed version of stackctl.

    Returns:
        str: Version string from package metadata, or fallback value
    """
    try:
        return metadata.version("stackctl")
    except metadata.PackageNotFoundError:
        return "0.1.0-dev"
