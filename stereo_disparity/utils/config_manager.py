"""
Configuration Management System

Handles loading, validation, and management of pipeline parameters.
"""

import numbers
import yaml
from typing import Dict, Any, Optional
from pathlib import Path

from ..exceptions import InvalidConfigurationError


class ConfigManager:
    """Manages configuration parameters for the stereo disparity pipeline."""

    INTEGER_KEYS = {
        'sgbm': ('min_disparity', 'num_disparities', 'block_size', 'pre_filter_cap', 'pre_filter_size',
                 'speckle_window_size', 'max_workers'),
        'lrc': ('disp12_max_diff',),
        'postprocess': ('kernel_width', 'kernel_height'),
        'edges': ('aperture_size',),
    }

    NUMBER_KEYS = {
        'sgbm': ('P1', 'P2', 'uniqueness_ratio', 'speckle_range', 'texture_threshold'),
        'lrc': ('low_confidence',),
        'wls': ('lambda', 'sigma', 'min_edge_weight'),
        'postprocess': ('alpha', 'beta', 'sigma_x', 'sigma_y'),
        'edges': ('threshold1', 'threshold2'),
    }

    BOOLEAN_KEYS = {
        'postprocess': ('absolute_difference',),
        'edges': ('l2_gradient',),
        'pipeline': ('parallel',),
    }

    def __init__(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to configuration file. If None, uses default config.
            overrides: Dotted keys (e.g. {'sgbm.block_size': 7}) applied on top of the file
        """
        self.config_path = config_path or self._get_default_config_path()
        self.config = self._load_config()

        for key, value in (overrides or {}).items():
            self._assign(key, value)

        self._validate_config()

    def _get_default_config_path(self) -> str:
        """Get path to default configuration file."""
        current_dir = Path(__file__).parent.parent.parent
        return str(current_dir / "config" / "default_config.yaml")

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        try:
            with open(self.config_path, 'r') as file:
                config = yaml.safe_load(file)
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise InvalidConfigurationError(f"Error parsing configuration file: {e}")

        if not isinstance(config, dict):
            raise InvalidConfigurationError(f"Configuration file must contain a mapping: {self.config_path}")

        return config

    def _validate_types(self) -> None:
        """Reject values of the wrong type before any range check compares them."""
        for section, keys in self.INTEGER_KEYS.items():
            for key in keys:
                value = self.config.get(section, {}).get(key)
                if value is not None and (isinstance(value, bool) or not isinstance(value, numbers.Integral)):
                    raise InvalidConfigurationError(f"{section}.{key} must be an integer, got {value!r}")

        for section, keys in self.NUMBER_KEYS.items():
            for key in keys:
                value = self.config.get(section, {}).get(key)
                if value is not None and (isinstance(value, bool) or not isinstance(value, numbers.Real)):
                    raise InvalidConfigurationError(f"{section}.{key} must be a number, got {value!r}")

        for section, keys in self.BOOLEAN_KEYS.items():
            for key in keys:
                value = self.config.get(section, {}).get(key)
                if value is not None and not isinstance(value, bool):
                    raise InvalidConfigurationError(f"{section}.{key} must be true or false, got {value!r}")

    def _validate_config(self) -> None:
        """Validate configuration parameters for consistency and feasibility."""
        for section in ('sgbm', 'lrc', 'wls', 'postprocess', 'edges', 'pipeline'):
            if not isinstance(self.config.get(section, {}), dict):
                raise InvalidConfigurationError(f"Configuration section '{section}' must be a mapping")

        self._validate_types()

        # Validate SGBM parameters
        sgbm = self.config.get('sgbm', {})
        if sgbm.get('num_disparities', 256) <= 0:
            raise InvalidConfigurationError("sgbm.num_disparities must be positive")

        block_size = sgbm.get('block_size', 5)
        if block_size < 1 or block_size % 2 == 0:
            raise InvalidConfigurationError("sgbm.block_size must be odd and >= 1")

        p1 = sgbm.get('P1', 400)
        p2 = sgbm.get('P2', 1600)
        if p1 < 0:
            raise InvalidConfigurationError("sgbm.P1 must be non-negative")
        if p2 < p1:
            raise InvalidConfigurationError("sgbm.P2 must be greater than or equal to sgbm.P1")

        if sgbm.get('pre_filter_cap', 31) < 1:
            raise InvalidConfigurationError("sgbm.pre_filter_cap must be >= 1")

        pre_filter_size = sgbm.get('pre_filter_size', 9)
        if pre_filter_size < 3 or pre_filter_size % 2 == 0:
            raise InvalidConfigurationError("sgbm.pre_filter_size must be odd and >= 3")

        if sgbm.get('cost_metric', 'sad') not in ('sad', 'bt'):
            raise InvalidConfigurationError("sgbm.cost_metric must be 'sad' or 'bt'")

        for key in ('uniqueness_ratio', 'speckle_window_size', 'speckle_range', 'texture_threshold'):
            if sgbm.get(key, 0) < 0:
                raise InvalidConfigurationError(f"sgbm.{key} must be non-negative")

        if sgbm.get('mode', 'full') not in ('reduced', 'full'):
            raise InvalidConfigurationError("sgbm.mode must be 'reduced' or 'full'")

        if sgbm.get('max_workers', 1) < 1:
            raise InvalidConfigurationError("sgbm.max_workers must be >= 1")

        # Validate consistency parameters
        lrc = self.config.get('lrc', {})
        low_confidence = lrc.get('low_confidence', 0.1)
        if not 0.0 <= low_confidence <= 1.0:
            raise InvalidConfigurationError("lrc.low_confidence must lie in [0, 1]")

        # Validate WLS parameters
        wls = self.config.get('wls', {})
        if wls.get('lambda', 500.0) <= 0:
            raise InvalidConfigurationError("wls.lambda must be positive")
        if wls.get('sigma', 1.5) <= 0:
            raise InvalidConfigurationError("wls.sigma must be positive")
        min_edge_weight = float(wls.get('min_edge_weight', 1e-5))
        if not 0.0 < min_edge_weight <= 1.0:
            raise InvalidConfigurationError("wls.min_edge_weight must lie in (0, 1]")
        if wls.get('solver', 'exact') not in ('exact', 'fast'):
            raise InvalidConfigurationError("wls.solver must be 'exact' or 'fast'")

        # Validate blur kernel
        post = self.config.get('postprocess', {})
        for key in ('kernel_width', 'kernel_height'):
            size = post.get(key, 3)
            if size < 1 or size % 2 == 0:
                raise InvalidConfigurationError(f"postprocess.{key} must be odd and positive")

        # Validate edge detector thresholds
        edges = self.config.get('edges', {})
        low = edges.get('threshold1', 100.0)
        high = edges.get('threshold2', 200.0)
        if low < 0 or high < low:
            raise InvalidConfigurationError("edges thresholds must satisfy 0 <= threshold1 <= threshold2")
        if edges.get('aperture_size', 3) not in (3, 5, 7):
            raise InvalidConfigurationError("edges.aperture_size must be 3, 5 or 7")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'sgbm.block_size')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def _assign(self, key: str, value: Any) -> None:
        keys = key.split('.')
        config_ref = self.config

        for k in keys[:-1]:
            if k not in config_ref:
                config_ref[k] = {}
            config_ref = config_ref[k]

        config_ref[keys[-1]] = value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'sgbm.block_size')
            value: Value to set
        """
        self._assign(key, value)
        self._validate_config()

    def update(self, values: Dict[str, Any]) -> None:
        """
        Set several dotted keys at once and validate the result once.

        Useful when values depend on each other, e.g. raising P1 above the
        current P2 together with P2.

        Args:
            values: Mapping of dotted keys to values
        """
        for key, value in values.items():
            self._assign(key, value)
        self._validate_config()

    def save(self, output_path: Optional[str] = None) -> None:
        """
        Save current configuration to file.

        Args:
            output_path: Path to save configuration. If None, overwrites current file.
        """
        save_path = output_path or self.config_path

        with open(save_path, 'w') as file:
            yaml.dump(self.config, file, default_flow_style=False, indent=2)

    def get_sgbm_params(self) -> Dict[str, Any]:
        """Get cost volume, aggregation and selection parameters as a dictionary."""
        return self.config.get('sgbm', {})

    def get_lrc_params(self) -> Dict[str, Any]:
        """Get Left-Right Consistency parameters as a dictionary."""
        return self.config.get('lrc', {})

    def get_wls_params(self) -> Dict[str, Any]:
        """Get WLS refinement parameters as a dictionary."""
        return self.config.get('wls', {})

    def get_postprocess_params(self) -> Dict[str, Any]:
        """Get normalization parameters as a dictionary."""
        return self.config.get('postprocess', {})

    def get_edge_params(self) -> Dict[str, Any]:
        """Get edge detector parameters as a dictionary."""
        return self.config.get('edges', {})

    def get_pipeline_params(self) -> Dict[str, Any]:
        """Get pipeline orchestration parameters as a dictionary."""
        return self.config.get('pipeline', {})
