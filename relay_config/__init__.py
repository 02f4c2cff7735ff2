"""toolrelay configuration."""

from relay_config.settings import Settings

__all__ = ["Settings"]
