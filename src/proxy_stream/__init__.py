"""Transparent TCP relay with packet skip, admission control and idle timeout."""

import pathlib
import tomllib
from importlib import metadata

DIST_NAME = "proxy-stream"


def get_version() -> str:
    """Return the installed version, falling back to the source tree's pyproject.toml."""
    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        pass

    # Running from a checkout: walk up to the project root
    here = pathlib.Path(__file__).parent
    for parent in [here, *here.parents]:
        pyproject_path = parent / "pyproject.toml"
        if pyproject_path.exists():
            with pyproject_path.open("rb") as f:
                project = tomllib.load(f).get("project", {})
            if project.get("name") == DIST_NAME:
                return project["version"]

    return "0.0.0"


__version__ = get_version()
