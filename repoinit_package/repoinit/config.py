"""
Configuration loading for repoinit.

The configuration file is optional. When present it is a YAML document with
the following sections (all optional):

    placeholders:          default placeholder values (KEY: value)
    target_files:          files scanned for {{KEY}} tokens
    parameter_store_map:   KEY: /ssm/parameter/path
    license:               templates_dir, output
    github_config:         token, labels, ruleset_file, cleanup_paths,
                           pages_branch, pages_path, docs_config
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from .errors import ConfigurationError
from .placeholders import is_valid_key

logger = logging.getLogger('repoinit.config')

DEFAULT_CONFIG_PATH = "repoinit.yaml"

DEFAULT_TARGET_FILES = [
    "README.md",
    "CONTRIBUTING.md",
    ".github/CODEOWNERS",
    "LICENSE",
    "mkdocs.yml",
    "docs/index.md",
    "docs/docfx.json",
]

DEFAULT_LABELS = [
    {"name": "bug", "color": "d73a4a", "description": "Something isn't working"},
    {"name": "enhancement", "color": "a2eeef", "description": "New feature or request"},
    {"name": "documentation", "color": "0075ca", "description": "Improvements or additions to documentation"},
    {"name": "dependencies", "color": "0366d6", "description": "Dependency updates"},
    {"name": "good first issue", "color": "7057ff", "description": "Good for newcomers"},
]

DEFAULTS: Dict[str, Any] = {
    "placeholders": {},
    "target_files": DEFAULT_TARGET_FILES,
    "parameter_store_map": {},
    "license": {
        "templates_dir": ".github/license-templates",
        "output": "LICENSE",
    },
    "github_config": {
        "token": None,
        "labels": DEFAULT_LABELS,
        "ruleset_file": ".github/rulesets/default-branch.json",
        "cleanup_paths": [".github/rulesets", DEFAULT_CONFIG_PATH],
        "cleanup_title": "Remove repository setup files",
        "pages_branch": "gh-pages",
        "pages_path": "/",
        "docs_config": "mkdocs.yml",
    },
}

_MAPPING_SECTIONS = ("placeholders", "parameter_store_map", "license", "github_config")
_LIST_SECTIONS = ("target_files",)


def load_config(config_path: str = DEFAULT_CONFIG_PATH, required: bool = False) -> Dict[str, Any]:
    """
    Load configuration from a YAML file and merge it over the defaults.

    Args:
        config_path: Path to the YAML configuration file
        required: Raise if the file does not exist instead of using defaults

    Returns:
        Configuration dictionary with every section present

    Raises:
        ConfigurationError: If the file is missing (when required), unreadable or malformed
    """
    config = copy.deepcopy(DEFAULTS)
    config_file = Path(config_path)

    if not config_file.exists():
        if required:
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        logger.info(f"No configuration file at {config_path}, using defaults")
        return config

    logger.info(f"Loading configuration from {config_path}")
    try:
        with open(config_file, 'r', encoding='utf-8') as file:
            loaded = yaml.safe_load(file)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing YAML configuration: {e}")
    except IOError as e:
        raise ConfigurationError(f"Error reading configuration file: {e}")

    # An empty file is as good as no file
    if loaded is None:
        return config
    if not isinstance(loaded, dict):
        raise ConfigurationError("Configuration file must contain a mapping at the top level")

    for section, value in loaded.items():
        # Sections commented out in YAML come back as None
        if value is None:
            continue
        if section in _MAPPING_SECTIONS:
            if not isinstance(value, dict):
                raise ConfigurationError(f"'{section}' must be a dictionary")
            if section in ("license", "github_config"):
                config[section].update(value)
            else:
                config[section] = dict(value)
        elif section in _LIST_SECTIONS:
            if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                raise ConfigurationError(f"'{section}' must be a list of paths")
            config[section] = list(value)
        else:
            logger.warning(f"Ignoring unknown configuration section '{section}'")

    _validate(config)
    logger.info("Configuration loaded successfully")
    return config


def _validate(config: Dict[str, Any]) -> None:
    """Check the nested values that the merge step cannot type-check."""
    for section in ("placeholders", "parameter_store_map"):
        for key in config[section]:
            if not is_valid_key(str(key)):
                raise ConfigurationError(
                    f"Invalid placeholder key '{key}' in '{section}': use upper-case letters, digits and underscores"
                )
    for key, value in config["placeholders"].items():
        if not isinstance(value, (str, int)):
            raise ConfigurationError(f"Placeholder '{key}' must be a string")
    config["placeholders"] = {str(k): str(v) for k, v in config["placeholders"].items()}

    github_config = config["github_config"]
    labels = github_config.get("labels") or []
    if not isinstance(labels, list):
        raise ConfigurationError("'github_config.labels' must be a list")
    for label in labels:
        if not isinstance(label, dict) or not label.get("name"):
            raise ConfigurationError(f"Invalid label definition: {label!r}")

    cleanup_paths = github_config.get("cleanup_paths") or []
    if not isinstance(cleanup_paths, list):
        raise ConfigurationError("'github_config.cleanup_paths' must be a list")
