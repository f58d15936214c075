import json
import logging
import sys
import tomllib
from pathlib import Path
from typing import Callable

import yaml

from distropkg import app_config, cli
from distropkg.config import Configuration

logger = logging.getLogger(__name__)

# Per-user settings win over system-wide ones, which win over a
# file in the working directory. Only the first file found is read.
CONFPATHS: list[Path] = [
    Path.home() / ".config" / "distropkg" / "config.yaml",
    Path.home() / ".config" / "distropkg" / "config.toml",
    Path.home() / ".config" / "distropkg" / "config.json",
    Path("/etc") / "distropkg" / "config.yaml",
    Path("/etc") / "distropkg" / "config.toml",
    Path("/etc") / "distropkg" / "config.json",
    Path.cwd() / "distropkg.yaml",
    Path.cwd() / "distropkg.toml",
    Path.cwd() / "distropkg.json",
]

# Loader callable per file extension
LOADERS: dict[str, Callable] = {
    "yaml": yaml.safe_load,
    "yml": yaml.safe_load,
    "toml": tomllib.load,
    "json": json.load,
}


def setup_logging(log_level: str, log_file: str | None = None) -> None:
    """
    Configure logging for distropkg.

    Records go to stderr, or to log_file when one is configured.
    The distropkg loggers use log_level, while everything else,
    fabric and paramiko included, stays at WARNING.

    :param log_level: Level name for the distropkg loggers
    :param log_file: Optional path of a file to log to
    """
    handler: logging.Handler

    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler()
        handler.setLevel(log_level)

    logging.basicConfig(
        level=logging.WARN,
        handlers=[handler],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logging.getLogger("distropkg").setLevel(log_level)
    logger.info("Logging initialized with level: %s", log_level)


def load_first_config(config: Configuration) -> bool:
    """
    Populate config from the first file in CONFPATHS that exists.

    Files with an unknown extension are skipped. A file that exists
    but cannot be parsed aborts the program, since running package
    operations with half a configuration is worse than not running.

    :param config: Configuration to update in place
    :return: True if a file was loaded, False if none was found
    """
    for confpath in CONFPATHS:
        logger.debug("Trying config file at %s", confpath)
        if not confpath.exists():
            continue

        ext = confpath.suffix[1:].lower()
        loader = LOADERS.get(ext)

        if not loader:
            logger.error("No working loaders for extension: %s, skipping.", ext)
            continue

        try:
            if config.from_file(filepath=str(confpath), loader=loader, silent=True):
                logger.info("Loaded config file from %s", confpath)
                return True

            logger.warning("Failed to load config file from %s", confpath)
        except Exception as e:
            logger.error("Startup error: %s", e)
            sys.exit(1)

    return False


def main() -> None:
    """
    distropkg entry point.

    Settings are layered as defaults, then the first configuration
    file found, then environment variables. Command line flags are
    applied on top by the CLI itself.
    """
    config_loaded = load_first_config(app_config)
    app_config.from_env()

    options = app_config["options"]

    # Debug output always goes to the console
    if options.get("debug"):
        setup_logging("DEBUG")
        logger.warning("Debug mode enabled! Logs may flood console!")
    else:
        setup_logging(options["log_level"], options.get("log_file"))

    if not config_loaded:
        logger.info("No configuration file found. Using defaults.")

    cli.app()


if __name__ == "__main__":
    main()
