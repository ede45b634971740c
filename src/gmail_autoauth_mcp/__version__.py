"""Version of the installed gmail-autoauth-mcp distribution."""

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DISTRIBUTION_NAME = "gmail-autoauth-mcp"

# Source checkouts without an installed distribution read the repository VERSION file
_SOURCE_VERSION_FILE = Path(__file__).resolve().parents[2] / "VERSION"


def resolve_version(version_file: Path = _SOURCE_VERSION_FILE) -> str:
    """Return the distribution version, or the VERSION file when not installed.

    Returns "0+unknown" when neither is available.
    """
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        pass

    if version_file.is_file():
        return version_file.read_text(encoding="utf-8").strip()
    return "0+unknown"


__version__ = resolve_version()
