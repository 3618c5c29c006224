"""
Configuration management for dep-arbiter.

Settings are read from the first config file found in the standard
locations (JSON, YAML or TOML), then overridden by DEP_ARBITER_* environment
variables, then validated.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml
import yaml
from rich.console import Console

console = Console(stderr=True)

CONFIG_FILE_NAMES = [
    ".dep-arbiter.json",
    ".dep-arbiter.yaml",
    ".dep-arbiter.yml",
    ".dep-arbiter.toml",
]

VALID_OUTPUT_FORMATS = ["console", "json"]
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class ArbitrationConfig:
    """Rules and resolution behaviour."""

    rules: List[str] = field(default_factory=list)
    rules_file: Optional[str] = None
    ignore_test_deps: bool = False


@dataclass
class InputConfig:
    """Manifest reading limits."""

    max_file_size_mb: int = 10
    max_lines_per_file: int = 100000
    allowed_file_extensions: List[str] = field(
        default_factory=lambda: [".txt", ".list", ".xml", ".gradle", ".kts"]
    )

    @property
    def max_file_size_bytes(self) -> int:
        """Convert MB to bytes for internal use."""
        return self.max_file_size_mb * 1024 * 1024


@dataclass
class OutputConfig:
    """Where and how results are written."""

    output_format: str = "console"
    output_dir: Optional[str] = None
    build_file_name: str = "BUILD.out"
    workspace_file_name: str = "external_deps.bzl.out"
    quiet: bool = False
    verbose: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = "WARNING"
    enable_json: bool = True


@dataclass
class ComprehensiveConfig:
    """Main configuration containing all subsections."""

    arbitration: ArbitrationConfig = field(default_factory=ArbitrationConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Global configuration instance
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

    def check_type(value: Any, expected: Any, name: str, type_name: str) -> bool:
        # bool is an int subclass, never accept it where a number is expected
        if isinstance(value, expected) and not (
            isinstance(value, bool) and bool not in _as_tuple(expected)
        ):
            return True
        errors.append(f"{name} must be {type_name}, got {value!r}")
        return False

    if not isinstance(config.arbitration.rules, list) or not all(
        isinstance(rule, str) for rule in config.arbitration.rules
    ):
        errors.append("arbitration.rules must be a list of rule lines")
    check_type(
        config.arbitration.rules_file, (str, type(None)), "arbitration.rules_file", "a path"
    )
    check_type(
        config.arbitration.ignore_test_deps,
        bool,
        "arbitration.ignore_test_deps",
        "true or false",
    )

    if check_type(
        config.input.max_file_size_mb, int, "input.max_file_size_mb", "an integer"
    ):
        if config.input.max_file_size_mb <= 0:
            errors.append("input.max_file_size_mb must be positive")
    if check_type(
        config.input.max_lines_per_file, int, "input.max_lines_per_file", "an integer"
    ):
        if config.input.max_lines_per_file <= 0:
            errors.append("input.max_lines_per_file must be positive")
    if check_type(
        config.input.allowed_file_extensions,
        list,
        "input.allowed_file_extensions",
        "a list",
    ):
        for extension in config.input.allowed_file_extensions:
            if not isinstance(extension, str) or not extension.startswith("."):
                errors.append(
                    f"input.allowed_file_extensions entry {extension!r} must start with '.'"
                )

    if config.output.output_format not in VALID_OUTPUT_FORMATS:
        errors.append(
            f"output.output_format must be one of {', '.join(VALID_OUTPUT_FORMATS)}"
        )
    check_type(config.output.output_dir, (str, type(None)), "output.output_dir", "a path")
    for key in ["build_file_name", "workspace_file_name"]:
        value = getattr(config.output, key)
        if check_type(value, str, f"output.{key}", "a file name") and not value:
            errors.append(f"output.{key} must not be empty")
    for key in ["quiet", "verbose"]:
        check_type(getattr(config.output, key), bool, f"output.{key}", "true or false")

    if str(config.logging.log_level).upper() not in VALID_LOG_LEVELS:
        errors.append(f"logging.log_level must be one of {', '.join(VALID_LOG_LEVELS)}")
    check_type(config.logging.enable_json, bool, "logging.enable_json", "true or false")

    return errors


def _as_tuple(expected: Any) -> tuple:
    return expected if isinstance(expected, tuple) else (expected,)


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            suffix = config_path.suffix.lower()
            if suffix in [".yaml", ".yml"]:
                return yaml.safe_load(f)
            elif suffix == ".toml":
                return toml.load(f)
            elif suffix == ".json":
                return json.load(f)
    except (OSError, ValueError, yaml.YAMLError, toml.TomlDecodeError) as e:
        console.print(
            f"⚠️  Error loading config from {config_path}: {e}", style="yellow"
        )

    return None


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    user_dir = Path.home() / ".config" / "dep-arbiter"
    locations = [Path.cwd() / name for name in CONFIG_FILE_NAMES]
    locations += [
        user_dir / "config.json",
        user_dir / "config.yaml",
        user_dir / "config.yml",
        user_dir / "config.toml",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: ComprehensiveConfig) -> None:
    """Load environment variable overrides."""

    def get_env_bool(key: str, default: bool = False) -> bool:
        value = os.environ.get(key, "").lower()
        return value in ["true", "1", "yes", "on"] if value else default

    def get_env_int(key: str, default: Optional[int] = None) -> Optional[int]:
        try:
            return int(os.environ[key]) if key in os.environ else default
        except ValueError:
            console.print(
                f"⚠️  Invalid integer value for {key}, using default", style="yellow"
            )
            return default

    if rules_file := os.environ.get("DEP_ARBITER_RULES_FILE"):
        config.arbitration.rules_file = rules_file
    config.arbitration.ignore_test_deps = get_env_bool(
        "DEP_ARBITER_IGNORE_TEST_DEPS", config.arbitration.ignore_test_deps
    )

    if max_file_size := get_env_int("DEP_ARBITER_MAX_FILE_SIZE_MB"):
        config.input.max_file_size_mb = max_file_size

    if output_format := os.environ.get("DEP_ARBITER_OUTPUT_FORMAT"):
        config.output.output_format = output_format.lower()
    if output_dir := os.environ.get("DEP_ARBITER_OUTPUT_DIR"):
        config.output.output_dir = output_dir

    if log_level := os.environ.get("DEP_ARBITER_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()
    config.logging.enable_json = get_env_bool(
        "DEP_ARBITER_LOG_JSON", config.logging.enable_json
    )


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    for key, value in section_data.items():
        if hasattr(config, key):
            setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def apply_config_data(config: ComprehensiveConfig, data: Dict[str, Any]) -> None:
    """Apply every known section of a loaded config mapping."""
    for section_name in ["arbitration", "input", "output", "logging"]:
        section_data = data.get(section_name)
        if isinstance(section_data, dict):
            apply_config_section(
                getattr(config, section_name), section_data, section_name
            )


def load_config(config_path: Optional[Path] = None) -> ComprehensiveConfig:
    """Load configuration from file and environment."""
    config = ComprehensiveConfig()

    config_file = config_path or find_config_file()
    if config_file:
        file_config = load_config_file(Path(config_file))
        if file_config:
            apply_config_data(config, file_config)

    load_environment_overrides(config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")

    return config


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
    """Generate a sample configuration."""
    sample_config = {
        "arbitration": {
            "rules": [
                "groupId=org.green artifactId=.*-transport pinnedVersion=1.5.0",
                "groupId=org.red winningVersion=.*-patched",
            ],
            "rules_file": None,
            "ignore_test_deps": False,
        },
        "input": {
            "max_file_size_mb": 10,
            "max_lines_per_file": 100000,
            "allowed_file_extensions": [".txt", ".list", ".xml", ".gradle", ".kts"],
        },
        "output": {
            "output_format": "console",
            "output_dir": None,
            "build_file_name": "BUILD.out",
            "workspace_file_name": "external_deps.bzl.out",
        },
        "logging": {
            "log_level": "WARNING",
            "enable_json": True,
        },
    }

    return json.dumps(sample_config, indent=2)
