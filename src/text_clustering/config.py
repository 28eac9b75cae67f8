"""
Clustering configuration.

Defaults match the scrapbook app. Values can be overridden through
environment variables or a YAML file.

Environment Variables:
    CLUSTERING_MAX_K: Upper bound for the elbow search (default: 10)
    CLUSTERING_MAX_ITERATIONS: k-means iteration cap (default: 100)
    CLUSTERING_ELBOW_MAX_ITERATIONS: Iteration cap per elbow trial (default: 50)
    CLUSTERING_TOLERANCE: Centroid convergence tolerance (default: 1e-4)
    CLUSTERING_ASSIGN_THRESHOLD: Minimum similarity to join a cluster (default: 0.1)
    CLUSTERING_SIMILARITY_THRESHOLD: Noise floor for similar scraps (default: 0.05)
    CLUSTERING_RANDOM_STATE: Integer seed (default: unset, non-deterministic)
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

# Cluster colors for visualization
CLUSTER_COLORS: List[str] = [
    '#8b5cf6',  # violet
    '#06b6d4',  # cyan
    '#10b981',  # emerald
    '#f59e0b',  # amber
    '#ec4899',  # pink
    '#6366f1',  # indigo
    '#14b8a6',  # teal
    '#f97316',  # orange
    '#84cc16',  # lime
    '#a855f7',  # purple
]

_ENV_VARS = {
    'max_k': ('CLUSTERING_MAX_K', int),
    'max_iterations': ('CLUSTERING_MAX_ITERATIONS', int),
    'elbow_max_iterations': ('CLUSTERING_ELBOW_MAX_ITERATIONS', int),
    'tolerance': ('CLUSTERING_TOLERANCE', float),
    'assign_threshold': ('CLUSTERING_ASSIGN_THRESHOLD', float),
    'similarity_threshold': ('CLUSTERING_SIMILARITY_THRESHOLD', float),
    'random_state': ('CLUSTERING_RANDOM_STATE', int),
}


class ConfigError(ValueError):
    """Raised for invalid configuration values or unreadable config files."""


@dataclass
class ClusteringConfig:
    """Configuration for clustering behavior."""
    max_k: int = 10
    max_iterations: int = 100
    elbow_max_iterations: int = 50
    tolerance: float = 1e-4
    assign_threshold: float = 0.1
    similarity_threshold: float = 0.05
    name_terms: int = 3
    keyword_limit: int = 10
    random_state: Optional[int] = None
    palette: List[str] = field(default_factory=lambda: list(CLUSTER_COLORS))

    def __post_init__(self):
        """Validate fields after initialization."""
        for name in ('max_k', 'max_iterations', 'elbow_max_iterations', 'name_terms', 'keyword_limit'):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be at least 1, got {getattr(self, name)}")
        if self.tolerance <= 0:
            raise ConfigError(f"tolerance must be positive, got {self.tolerance}")
        for name in ('assign_threshold', 'similarity_threshold'):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ConfigError(f"{name} must be between 0.0 and 1.0, got {getattr(self, name)}")
        if not self.palette:
            raise ConfigError("palette must contain at least one color")
        if self.random_state is not None and (
            isinstance(self.random_state, bool) or not isinstance(self.random_state, int)
        ):
            raise ConfigError(f"random_state must be an integer seed, got {self.random_state!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClusteringConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown config keys: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_env(cls) -> 'ClusteringConfig':
        """Build a config from CLUSTERING_* environment variables."""
        values: Dict[str, Any] = {}
        for name, (env_var, cast) in _ENV_VARS.items():
            raw = os.environ.get(env_var)
            if raw is None or raw == '':
                continue
            try:
                values[name] = cast(raw)
            except ValueError as e:
                raise ConfigError(f"Invalid value for {env_var}: {raw!r}") from e
            logger.debug(f"Using {env_var}={raw}")

        return cls(**values)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'ClusteringConfig':
        """
        Load config from a YAML mapping.

        Args:
            path: Path to YAML file

        Returns:
            ClusteringConfig

        Raises:
            ConfigError: If the file can't be read, parsed or validated
        """
        config_path = Path(path)
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Config file not readable: {config_path}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

        logger.info(f"Loaded clustering config from {config_path}")
        return cls.from_dict(data)
