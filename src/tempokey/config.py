"""
Configuration management for tempokey.

Loads and validates TOML config against strict bounds.
All tunable analysis parameters are bounded and validated at startup.
"""

import copy
import os
from pathlib import Path
from typing import Dict, Any, Optional
import toml
import logging

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when config validation fails."""
    pass


class Config:
    """Configuration loader and validator."""

    # Numeric bounds per section; None marks params checked in _validate_shapes()
    PARAM_BOUNDS = {
        "tempo": {
            "target_sample_rate": (1000, 22050),
            "threshold_percentile": (0.5, 0.99),
            "interval_tolerance": (1, 50),
            "bpm_range": None,  # List type
            "default_bpm": (40, 250),
        },
        "key": {
            "fft_size": (1024, 16384),
            "max_duration_seconds": (5.0, 600.0),
            "min_frequency": (20.0, 1000.0),
            "max_frequency": (200.0, 8000.0),
        },
        "worker": {
            "max_concurrent": (1, 32),
            "start_method": None,  # String type
        },
    }

    DEFAULT_CONFIG = {
        "config_version": "1.0",
        "tempo": {
            "target_sample_rate": 4410,
            "threshold_percentile": 0.85,
            "interval_tolerance": 5,
            "bpm_range": [70, 180],
            "default_bpm": 120,
        },
        "key": {
            "fft_size": 4096,
            "max_duration_seconds": 30.0,
            "min_frequency": 60.0,
            "max_frequency": 2000.0,
        },
        "worker": {
            "max_concurrent": 4,
            "start_method": "spawn",
        },
    }

    START_METHODS = ("", "fork", "spawn", "forkserver")

    def __init__(self, config_dict: Dict[str, Any]):
        """Initialize config from dictionary."""
        self.data = config_dict
        self._validate()

    @classmethod
    def default(cls) -> "Config":
        return cls(copy.deepcopy(cls.DEFAULT_CONFIG))

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """
        Load config from TOML file.

        Args:
            config_path: Path to tempokey.toml. If None, uses TEMPOKEY_CONFIG_PATH env var
                        or defaults to configs/tempokey.toml.

        Returns:
            Config instance.

        Raises:
            ConfigError: If config is invalid or cannot be parsed.
        """
        if config_path is None:
            config_path = os.getenv("TEMPOKEY_CONFIG_PATH", "configs/tempokey.toml")

        config_path = Path(config_path)

        if not config_path.exists():
            logger.warning(f"Config file not found: {config_path}. Using defaults.")
            return cls.default()

        try:
            config_dict = toml.load(config_path)
        except (toml.TomlDecodeError, OSError) as e:
            raise ConfigError(f"Failed to load config from {config_path}: {e}")

        logger.info(f"Loaded config from {config_path}")
        return cls(config_dict)

    def _validate(self) -> None:
        """
        Validate all config parameters against PARAM_BOUNDS.

        Raises:
            ConfigError: If any parameter is out of bounds.
        """
        for section, params in self.PARAM_BOUNDS.items():
            if section not in self.data:
                logger.warning(f"Missing config section: {section}. Using defaults.")
                self.data[section] = copy.deepcopy(self.DEFAULT_CONFIG.get(section, {}))
                continue

            section_data = self.data[section]

            for param, bounds in params.items():
                if param not in section_data:
                    default_val = self.DEFAULT_CONFIG.get(section, {}).get(param)
                    if default_val is not None:
                        logger.warning(f"Missing param {section}.{param}. Using default: {default_val}")
                        section_data[param] = copy.deepcopy(default_val)
                    continue

                value = section_data[param]

                # Non-numeric types are checked in _validate_shapes()
                if bounds is None:
                    continue

                if isinstance(bounds, tuple) and len(bounds) == 2:
                    min_val, max_val = bounds
                    if not isinstance(value, (int, float)) or isinstance(value, bool):
                        raise ConfigError(f"Parameter {section}.{param}={value!r} must be a number")
                    if not (min_val <= value <= max_val):
                        raise ConfigError(
                            f"Parameter {section}.{param}={value} out of bounds "
                            f"[{min_val}, {max_val}]"
                        )

        self._validate_shapes()
        logger.debug("Config validation passed")

    def _validate_shapes(self) -> None:
        tempo = self.data["tempo"]
        bpm_range = tempo["bpm_range"]
        if not isinstance(bpm_range, (list, tuple)) or len(bpm_range) != 2:
            raise ConfigError(f"Parameter tempo.bpm_range={bpm_range!r} must be [min, max]")
        min_bpm, max_bpm = bpm_range
        # Octave folding needs a band at least one octave wide
        if not (0 < min_bpm and max_bpm >= 2 * min_bpm):
            raise ConfigError(
                f"Parameter tempo.bpm_range={bpm_range!r} must satisfy 0 < min and max >= 2 * min"
            )
        if not (min_bpm <= tempo["default_bpm"] <= max_bpm):
            raise ConfigError(
                f"Parameter tempo.default_bpm={tempo['default_bpm']} outside bpm_range {bpm_range!r}"
            )

        key = self.data["key"]
        fft_size = key["fft_size"]
        if not isinstance(fft_size, int) or fft_size & (fft_size - 1) != 0:
            raise ConfigError(f"Parameter key.fft_size={fft_size} must be a power of two")
        if key["min_frequency"] >= key["max_frequency"]:
            raise ConfigError(
                f"Parameter key.min_frequency={key['min_frequency']} must be below "
                f"key.max_frequency={key['max_frequency']}"
            )

        start_method = self.data["worker"]["start_method"]
        if start_method not in self.START_METHODS:
            raise ConfigError(
                f"Parameter worker.start_method={start_method!r} must be one of {self.START_METHODS}"
            )

    def get(self, section: str, param: str, default: Any = None) -> Any:
        """Get a config parameter safely."""
        return self.data.get(section, {}).get(param, default)

    def __getitem__(self, section: str) -> Dict[str, Any]:
        """Allow dict-like access: config["tempo"]"""
        return self.data.get(section, {})

    def __repr__(self) -> str:
        version = self.data.get('config_version', 'unknown')
        return f"Config(version={version})"
