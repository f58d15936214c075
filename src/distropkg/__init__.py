import importlib.metadata

from distropkg.config import Configuration

# Global configuration instance
# Populated at startup from config files and the environment,
# and used as the default for new installer contexts.
app_config = Configuration()  # Has default values out of the box

# Current software version, imported from pyproject metadata
__version__ = importlib.metadata.version("distropkg")

__all__ = ["__version__", "app_config"]
