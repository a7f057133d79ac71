"""
Per-environment settings files (.env.development, .env.production, ...).
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Type

from pydantic_settings import BaseSettings

from .settings import (
    Environment,
    FlightLookupSettings,
    PhotoSearchSettings,
    RedisSettings,
    Settings,
    StorageSettings,
)

logger = logging.getLogger(__name__)

# Nested groups only read their own file when it is handed to them explicitly
_SETTING_GROUPS: Dict[str, Type[BaseSettings]] = {
    "storage": StorageSettings,
    "redis": RedisSettings,
    "photo_search": PhotoSearchSettings,
    "flight_lookup": FlightLookupSettings,
}


class ConfigLoader:
    """Builds Settings from the file matching an environment name"""

    @staticmethod
    def load_environment_config(
        environment: Optional[str] = None,
        config_dir: Optional[Path] = None
    ) -> Settings:
        """
        Load settings for an environment.

        Args:
            environment: development, staging, production or testing.
                        Falls back to $ENVIRONMENT, then development
            config_dir: Directory holding the .env.<environment> files (default: cwd)

        Returns:
            Settings; process environment variables still take precedence
            over values from the file
        """
        if environment is None:
            environment = os.getenv("ENVIRONMENT", "development")

        env = Environment(environment.lower())
        env_file = (config_dir or Path(".")) / f".env.{env.value}"

        if not env_file.exists():
            logger.warning(f"No {env_file.name} in {env_file.parent.resolve()}, using process environment only")
            return Settings(environment=env)

        logger.info(f"Loading settings from {env_file}")
        groups = {name: group(_env_file=str(env_file)) for name, group in _SETTING_GROUPS.items()}
        return Settings(_env_file=str(env_file), environment=env, **groups)

    @staticmethod
    def get_available_environments(config_dir: Optional[Path] = None) -> List[str]:
        """Environments that have a settings file in config_dir."""
        known = {e.value for e in Environment}
        found = [
            path.name[len(".env."):]
            for path in (config_dir or Path(".")).glob(".env.*")
        ]
        return sorted(name for name in found if name in known)


def load_config_for_environment(environment: Optional[str] = None) -> Settings:
    return ConfigLoader.load_environment_config(environment)
