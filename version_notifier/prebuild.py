"""Build step: write the current version string to <PUBLIC_DIR>/version.txt.

The version comes from APP_VERSION (environment or .env) and falls back to
``[project].version`` in the package manifest. This file is exactly what
the poller fetches at runtime.
"""
import logging
import sys
import tomllib
from pathlib import Path
from typing import Optional
from version_notifier.core.config import Settings
from version_notifier.core.errors import MissingConfiguration
from version_notifier.core.logging import setup_logging

logger = logging.getLogger("prebuild")


def manifest_version(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    with path.open("rb") as fh:
        data = tomllib.load(fh)
    version = data.get("project", {}).get("version")
    return str(version) if version else None


def resolve_version(cfg: Settings) -> str:
    if cfg.APP_VERSION:
        return cfg.APP_VERSION
    if cfg.VERSION_FROM_MANIFEST:
        version = manifest_version(Path(cfg.MANIFEST_PATH).expanduser())
        if version:
            return version
    raise MissingConfiguration("Variable must be present at build time!")


def write_version_file(cfg: Settings) -> Path:
    version = resolve_version(cfg)
    target = cfg.version_file
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(version, encoding="utf-8")
    logger.info("Wrote version %s to %s", version, target)
    return target


def main():
    setup_logging()
    try:
        write_version_file(Settings())
    except MissingConfiguration as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
