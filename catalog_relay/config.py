"""
Feature Configuration Loader for Catalog Relay.

Reads config/features.yaml; a missing or broken file disables nothing
but the optional components (everything reads as False).
"""

import logging
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / 'config' / 'features.yaml'


class FeatureConfig:
    """Feature configuration manager."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize feature config loader.

        Args:
            config_path: Path to features.yaml, defaults to config/features.yaml
        """
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            self._config = {}
            return

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load features config: {e}")
            self._config = {}

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    @property
    def is_relay_enabled(self) -> bool:
        """Check if Catalog Relay is enabled."""
        return bool(self._config.get('relay', {}).get('enabled', False))

    def is_component_enabled(self, component: str) -> bool:
        """Check if a relay component is enabled.

        Args:
            component: Component name (e.g., 'change_poller', 'group_send')
        """
        if not self.is_relay_enabled:
            return False

        return bool(self._config.get('relay', {}).get('components', {}).get(component, False))

    def get_limit(self, limit_name: str, default: Optional[Any] = None) -> Optional[Any]:
        """Get limit value."""
        return self._config.get('limits', {}).get(limit_name, default)


# Global instance
feature_config = FeatureConfig()


def is_relay_enabled() -> bool:
    """Check if Catalog Relay is enabled."""
    return feature_config.is_relay_enabled


def is_component_enabled(component: str) -> bool:
    """Check if specific relay component is enabled."""
    return feature_config.is_component_enabled(component)


def get_limit(limit_name: str, default: Optional[Any] = None) -> Optional[Any]:
    """Get limit value."""
    return feature_config.get_limit(limit_name, default)
