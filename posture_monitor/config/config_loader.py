"""Configuration loader for the posture monitor"""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional
import os


PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Config:
    """Configuration manager for the posture monitor"""

    def __init__(self, config_path: Optional[str] = None):
        if config_path is None:
            config_path = self._resolve_default_path()

        self.config_path = Path(config_path)
        self._config = self._load_config()

    @staticmethod
    def _resolve_default_path() -> str:
        """Find the config file for the current environment.

        POSTURE_CONFIG wins when set. Otherwise the environment-specific file
        (config/config.{POSTURE_ENV}.yaml) is tried before config/config.yaml,
        first relative to the working directory, then to the project root.
        """
        explicit = os.getenv('POSTURE_CONFIG')
        if explicit:
            return explicit

        env = os.getenv('POSTURE_ENV', 'development')
        candidates = [
            Path(f"config/config.{env}.yaml"),
            Path("config/config.yaml"),
            PROJECT_ROOT / "config" / f"config.{env}.yaml",
            PROJECT_ROOT / "config" / "config.yaml",
        ]
        for candidate in candidates:
            if candidate.exists():
                return str(candidate)

        return "config/config.yaml"

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file"""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r') as f:
            return yaml.safe_load(f) or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation

        Args:
            key: Configuration key in dot notation (e.g., 'control.initial_delay')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default

    def __getitem__(self, key: str) -> Any:
        """Allow dictionary-style access"""
        return self.get(key)

    def validate(self) -> None:
        """Validate configuration values"""
        alpha = self.get('tilt.smoothing_alpha')
        if alpha is not None and not 0 <= alpha <= 1:
            raise ValueError(f"Invalid smoothing_alpha: {alpha}, must be in [0, 1]")

        tilt_weight = self.get('scoring.tilt_weight', 0.5)
        distance_weight = self.get('scoring.distance_weight', 0.5)
        if abs(tilt_weight + distance_weight - 1.0) > 1e-6:
            raise ValueError(
                f"Scoring weights must sum to 1.0, got "
                f"{tilt_weight} + {distance_weight}"
            )

        initial_delay = self.get('control.initial_delay', 5.0)
        max_delay = self.get('control.max_delay', 60.0)
        if initial_delay <= 0:
            raise ValueError(f"Invalid initial_delay: {initial_delay}, must be positive")
        if max_delay < initial_delay:
            raise ValueError(
                f"Invalid max_delay: {max_delay}, must be >= initial_delay ({initial_delay})"
            )

        max_attempts = self.get('distance.max_attempts', 5)
        if max_attempts < 1:
            raise ValueError(f"Invalid max_attempts: {max_attempts}, must be at least 1")

        # Check Redis connection
        redis_url = self.get('redis.url')
        if not redis_url:
            raise ValueError("Redis URL not configured")


# Global config instance
config = Config()
