"""
asemap Configuration Management.

Handles loading and saving user configuration from ~/.asemap/config.yaml.
Configuration values are merged with CLI arguments, with CLI taking precedence.
"""

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import List, Optional
import logging

import yaml


# Default configuration directory
CONFIG_DIR = Path.home() / ".asemap"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

# Result tables written in addition to the uncorrected ase.txt
DEFAULT_CORRECTIONS = ["bonferroni", "holm", "bh"]


@dataclass
class AseConfig:
    """asemap configuration settings.

    Attributes:
        threads: Number of loader threads
        min_samples: Minimum samples with counts for a variant to be tested
        min_total_reads: Minimum ref + alt reads for a sample to be used
        min_allele_reads: Minimum reads on each allele for a sample to be used
        corrections: Multiple testing corrections to write tables for
        gene_feature: GTF feature type used for annotation (None = all)
        gene_attribute: GTF attribute reported in the Genes column
        log_level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR')
        log_file: Optional log file path
    """
    threads: int = 1
    min_samples: int = 1
    min_total_reads: int = 10
    min_allele_reads: int = 0
    corrections: List[str] = field(default_factory=lambda: list(DEFAULT_CORRECTIONS))
    gene_feature: Optional[str] = None
    gene_attribute: str = "gene_id"
    log_level: str = "WARNING"
    log_file: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert config to dictionary, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **overrides) -> "AseConfig":
        """Return a copy with every non-None override applied."""
        values = asdict(self)
        values.update({k: v for k, v in overrides.items() if v is not None and k in values})
        return AseConfig(**values)


def get_config_dir() -> Path:
    """Get the asemap configuration directory, creating if needed."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return CONFIG_DIR


def load_config(config_file: Optional[Path] = None) -> AseConfig:
    """Load configuration from file, returning defaults if not found."""
    config_file = config_file or CONFIG_FILE
    if not config_file.exists():
        return AseConfig()

    try:
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logging.warning(f"Error loading config file: {e}. Using defaults.")
        return AseConfig()

    if not isinstance(data, dict):
        logging.warning(f"Config file {config_file} is not a mapping. Using defaults.")
        return AseConfig()

    # Filter to only valid fields
    valid_fields = {f.name for f in fields(AseConfig)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}

    return AseConfig(**filtered)


def save_config(config: AseConfig, config_file: Optional[Path] = None) -> Path:
    """Save configuration to file."""
    if config_file is None:
        get_config_dir()
        config_file = CONFIG_FILE

    with open(config_file, "w") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)

    return config_file


def get_config_path() -> Path:
    """Get the path to the config file."""
    return CONFIG_FILE


# Verbosity level mapping for CLI
VERBOSITY_LEVELS = {
    0: logging.WARNING,   # Default: warnings and errors only
    1: logging.INFO,      # -v: info messages
    2: logging.DEBUG,     # -vv: debug messages
}


def setup_logging(verbosity: int = 0, log_file: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    The log file, when given, always records INFO and above so a run leaves
    a complete trace next to its results.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG
        log_file: Optional file to write logs to
    """
    level = VERBOSITY_LEVELS.get(verbosity, logging.DEBUG)

    # Format varies by verbosity
    if verbosity >= 2:
        fmt = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
    elif verbosity >= 1:
        fmt = "%(levelname)s: %(message)s"
    else:
        fmt = "%(message)s"

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(fmt))
    handlers: List[logging.Handler] = [stream_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(min(level, logging.INFO))
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s - %(message)s"))
        handlers.append(file_handler)

    logging.basicConfig(
        level=min(h.level for h in handlers),
        handlers=handlers,
        force=True,  # Override any existing configuration
    )


# Global config instance (lazy-loaded)
_config: Optional[AseConfig] = None


def get_config() -> AseConfig:
    """Get the global configuration, loading from file if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config

