"""
Configuration management for dep-module-mapper.

Provides configurable settings for classification, input validation,
output and logging, loaded from a config file and environment overrides.
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml
import yaml
from rich.console import Console

console = Console(stderr=True)

ENV_PREFIX = "DEP_MODULE_MAPPER_"


@dataclass
class ClassificationConfig:
    """Classification engine configuration."""

    default_slot: str = "main"
    legacy_group_matching: bool = False
    skip_test_scope: bool = True
    skip: bool = False


@dataclass
class SecurityConfig:
    """Input validation configuration."""

    max_file_size_mb: int = 10
    allowed_file_extensions: List[str] = field(
        default_factory=lambda: [".txt", ".log", ".list", ".tree", ".xml"]
    )

    @property
    def max_file_size_bytes(self) -> int:
        """Convert MB to bytes for internal use."""
        return self.max_file_size_mb * 1024 * 1024


@dataclass
class OutputConfig:
    """Report output configuration."""

    output_format: str = "console"
    output_file: Optional[str] = None
    verbose: bool = False
    quiet: bool = False


@dataclass
class LoggingConfig:
    """Logging and error handling configuration."""

    log_level: str = "WARNING"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    enable_json: bool = True


@dataclass
class ComprehensiveConfig:
    """Main configuration containing all subsections."""

    classification: ClassificationConfig = field(default_factory=ClassificationConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


CONFIG_SECTIONS = ("classification", "security", "output", "logging")

_global_config: Optional[ComprehensiveConfig] = None


def validate_config_values(config: ComprehensiveConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    if not str(config.classification.default_slot).strip():
        errors.append("classification.default_slot must not be blank")

    if config.security.max_file_size_mb <= 0:
        errors.append("security.max_file_size_mb must be positive")
    for extension in config.security.allowed_file_extensions:
        if not extension.startswith("."):
            errors.append(
                f"security.allowed_file_extensions entry must start with '.': {extension}"
            )

    if config.output.output_format not in ("console", "json"):
        errors.append("output.output_format must be 'console' or 'json'")
    if config.output.verbose and config.output.quiet:
        errors.append("output.verbose and output.quiet are mutually exclusive")

    if str(config.logging.log_level).upper() not in (
        "DEBUG",
        "INFO",
        "WARNING",
        "ERROR",
        "CRITICAL",
    ):
        errors.append(f"logging.log_level is not a valid level: {config.logging.log_level}")

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from a YAML, TOML or JSON file."""
    if not config_path.exists():
        return None

    suffix = config_path.suffix.lower()
    try:
        with open(config_path, encoding="utf-8") as f:
            if suffix in [".yaml", ".yml"]:
                return yaml.safe_load(f)
            elif suffix == ".toml":
                return toml.load(f)
            elif suffix == ".json":
                return json.load(f)
    except (OSError, yaml.YAMLError, toml.TomlDecodeError, json.JSONDecodeError) as e:
        console.print(f"⚠️  Error loading config from {config_path}: {e}", style="yellow")

    return None


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".dep-module-mapper.json",
        Path.cwd() / ".dep-module-mapper.yaml",
        Path.cwd() / ".dep-module-mapper.yml",
        Path.cwd() / ".dep-module-mapper.toml",
        Path.home() / ".config" / "dep-module-mapper" / "config.yaml",
        Path.home() / ".config" / "dep-module-mapper" / "config.json",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: ComprehensiveConfig) -> None:
    """Apply ``DEP_MODULE_MAPPER_*`` environment variable overrides."""

    def get_env_bool(key: str, default: bool = False) -> bool:
        value = os.environ.get(ENV_PREFIX + key, "").lower()
        return value in ["true", "1", "yes", "on"] if value else default

    def get_env_int(key: str, default: Optional[int] = None) -> Optional[int]:
        try:
            return int(os.environ[ENV_PREFIX + key]) if ENV_PREFIX + key in os.environ else default
        except ValueError:
            console.print(
                f"⚠️  Invalid integer value for {ENV_PREFIX + key}, using default",
                style="yellow",
            )
            return default

    if default_slot := os.environ.get(ENV_PREFIX + "DEFAULT_SLOT"):
        config.classification.default_slot = default_slot
    config.classification.legacy_group_matching = get_env_bool(
        "LEGACY_GROUP_MATCHING", config.classification.legacy_group_matching
    )
    config.classification.skip_test_scope = get_env_bool(
        "SKIP_TEST_SCOPE", config.classification.skip_test_scope
    )
    config.classification.skip = get_env_bool("SKIP", config.classification.skip)

    if max_file_size := get_env_int("MAX_FILE_SIZE_MB"):
        config.security.max_file_size_mb = max_file_size

    if output_format := os.environ.get(ENV_PREFIX + "OUTPUT_FORMAT"):
        config.output.output_format = output_format.lower()
    config.output.verbose = get_env_bool("VERBOSE", config.output.verbose)

    if log_level := os.environ.get(ENV_PREFIX + "LOG_LEVEL"):
        config.logging.log_level = log_level.upper()


def apply_config_section(config: Any, section_data: Dict[str, Any], section_name: str) -> None:
    """Apply configuration from dictionary to config section."""
    known = {f.name: f.type for f in fields(config)}
    for key, value in section_data.items():
        if key in known:
            # YAML and TOML load slot names such as 2 as numbers
            if value is not None and known[key] in (str, Optional[str]):
                value = str(value)
            setattr(config, key, value)
        else:
            console.print(f"⚠️  Unknown config key in {section_name}: {key}", style="yellow")


def build_config(file_config: Optional[Dict[str, Any]]) -> ComprehensiveConfig:
    """Create a configuration from parsed file contents and the environment."""
    config = ComprehensiveConfig()

    for section in CONFIG_SECTIONS:
        if file_config and isinstance(file_config.get(section), dict):
            apply_config_section(getattr(config, section), file_config[section], section)

    load_environment_overrides(config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
        console.print("Using default values for invalid settings.", style="yellow")
        _restore_defaults(config, validation_errors)

    return config


def _restore_defaults(config: ComprehensiveConfig, errors: List[str]) -> None:
    defaults = ComprehensiveConfig()
    for error in errors:
        section, _, rest = error.partition(".")
        key = rest.split(" ", 1)[0]
        if section in CONFIG_SECTIONS and hasattr(getattr(defaults, section), key):
            setattr(getattr(config, section), key, getattr(getattr(defaults, section), key))


def load_config(config_path: Optional[Path] = None) -> ComprehensiveConfig:
    """Load configuration from file and environment."""
    global _global_config

    path = config_path or find_config_file()
    file_config = load_config_file(path) if path else None

    _global_config = build_config(file_config)
    return _global_config


def get_config() -> ComprehensiveConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate sample configuration as YAML."""
    return yaml.safe_dump(ComprehensiveConfig().to_dict(), sort_keys=False)
