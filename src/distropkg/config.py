import errno
import json
import logging
import os
import tomllib
from collections.abc import Callable, Mapping
from typing import BinaryIO

import yaml

# Environment variables recognized by from_env(), mapped to
# their (section, key) location in the configuration structure.
ENV_FLAGS: dict[str, tuple[str, str]] = {
    "OFFLINE": ("options", "offline"),
    "NO_UPDATE_REPOS": ("options", "no_update_repos"),
    "RETRY_UPDATE": ("options", "retry_update"),
}

ENV_STRINGS: dict[str, tuple[str, str]] = {
    "YUM": ("options", "yum"),
    "http_proxy": ("proxy", "http_proxy"),
    "https_proxy": ("proxy", "https_proxy"),
    "no_proxy": ("proxy", "no_proxy"),
}

TRUTHY = ("1", "true", "yes", "on")


def parse_bool(value: str | bool | None) -> bool:
    """
    Interpret a bool-like value, as found in environment variables.
    Anything that isn't recognizably true is false.
    """
    if isinstance(value, bool):
        return value

    if value is None:
        return False

    return value.strip().lower() in TRUTHY


class Configuration(dict):
    """
    Hold configuration values for the application.
    Extends a native dict to store the options and proxy sections
    of the configuration file, with environment overrides on top.
    """

    DEFAULTS: dict = {
        "options": {
            "debug": False,  # Debug mode, enable verbose on root logger
            "log_level": "INFO",  # Default log level for the application
            "log_file": None,  # Log to console unless a file is given
            "sudo": True,  # Run package manager commands through sudo
            "offline": False,  # Disable all network repo operations
            "no_update_repos": False,  # Skip repo refresh unless forced
            "retry_update": False,  # Force the next repo refresh
            "yum": None,  # Override for the yum-family binary name
            "repo_update_timeout": 300,  # Overall repo refresh deadline (in seconds)
            "repo_update_interval": 30,  # Delay between refresh attempts (in seconds)
        },
        "proxy": {
            "http_proxy": "",
            "https_proxy": "",
            "no_proxy": "",
        },
    }

    def __init__(self) -> None:
        """
        Initialize the Configuration object with default values.
        """
        dict.__init__(self, {k: dict(v) for k, v in self.DEFAULTS.items()})
        self.logger = logging.getLogger(__name__)

    def from_toml(self, filepath: str, silent: bool = False) -> bool:
        """
        Populate the configuration structure from a toml file

        This method is a convenience wrapper used for shorthand
        for the from_file method, with tomllib.load() as the loader.

        see `from_file()`for details.
        """
        return self.from_file(filepath, tomllib.load, silent=silent)

    def from_yaml(self, filepath: str, silent: bool = False) -> bool:
        """
        Populate the configuration structure from a yaml file

        This method is a convenience wrapper used for shorthand
        for the from_file method, with yaml.safe_load() as the loader.

        see `from_file()`for details.
        """
        return self.from_file(filepath, yaml.safe_load, silent=silent)

    def from_json(self, filepath: str, silent: bool = False) -> bool:
        """
        Populate the configuration structure from a json file

        This method is a convenience wrapper used for shorthand
        for the from_file method, with json.load() as the loader.

        see `from_file()`for details.
        """
        return self.from_file(filepath, json.load, silent=silent)

    def from_file(
        self, filepath: str, loader: Callable[[BinaryIO], dict], silent: bool = False
    ) -> bool:
        """
        Populate the configuration structure from a file, with a
        specified loader function callable.

        The loader must be a reference to a callable that takes a
        file handle and returns a mapping of the data contained within.

        For instance, tomllib.load() is a valid loader for toml files
        """
        try:
            with open(filepath, "rb") as f:
                data = loader(f)
        except IOError as e:
            if silent and e.errno in (errno.ENOENT, errno.EISDIR):
                return False

            e.strerror = f"Unable to load config file {filepath}: {e.strerror}"

            raise

        # An empty yaml document loads as None
        if data is None:
            return True

        return self.update_from_mapping(data)

    def from_env(self, environ: Mapping[str, str] | None = None) -> bool:
        """
        Populate the configuration from environment variables.

        Bool-like flags (OFFLINE, NO_UPDATE_REPOS, RETRY_UPDATE) and
        string values (YUM, proxy variables) are only applied when
        present, so that file-based values remain in effect otherwise.
        Proxy variables are also accepted in upper case, the lower case
        spelling taking precedence.

        :param environ: Mapping to read from, defaults to os.environ
        :return: True if any value was taken from the environment
        """
        if environ is None:
            environ = os.environ

        found = False

        for var, (section, key) in ENV_FLAGS.items():
            if var in environ:
                self[section][key] = parse_bool(environ[var])
                found = True

        for var, (section, key) in ENV_STRINGS.items():
            value = environ.get(var)
            if value is None and section == "proxy":
                value = environ.get(var.upper())

            if value is not None:
                self[section][key] = value
                found = True

        if found:
            self.logger.debug("Configuration updated from environment")

        return found

    def update_from_mapping(self, *mapping: dict, **kwargs: dict) -> bool:
        """
        Populate values like the native dict.update() method, but
        only if the key is a valid root configuration key.

        This will also deep merge the values from the mapping
        if they are also dicts.
        """
        mappings = []

        if len(mapping) == 1:
            if hasattr(mapping[0], "items"):
                mappings.append(mapping[0].items())
            else:
                mappings.append(mapping[0])
        elif len(mapping) > 1:
            raise TypeError(
                f"Config mapping expected at most 1 positional argument, "
                f"got {len(mapping)}"
            )

        mappings.append(kwargs.items())

        # Parse and filter mappings
        for mapping in mappings:
            for k, v in mapping:
                if k in self.DEFAULTS:
                    if isinstance(self[k], dict) and isinstance(v, dict):
                        # deep merge the dicts
                        self.deep_update(self[k], v)
                    else:
                        self[k] = v
                else:
                    self.logger.warning(
                        "Configuration key %s is not a valid root key, ignoring", k
                    )

        return True

    def deep_update(self, d: dict, u: dict) -> dict:
        """
        Recursively update a dictionary with another dictionary.
        Ensures nested dicts are updated rather than replaced.
        """
        for k, v in u.items():
            if isinstance(v, dict) and k in d and isinstance(d[k], dict):
                self.deep_update(d[k], v)
            else:
                d[k] = v
        return d
