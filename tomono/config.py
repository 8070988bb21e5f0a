#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

import yaml

from .exit_codes import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("tomono")

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. TOMONO_CONFIG environment variable
    2. ~/.tomono/ directory
    """
    if 'TOMONO_CONFIG' in os.environ:
        path = Path(os.environ['TOMONO_CONFIG'])
        if path.exists():
            return path
        logger.warning(f"TOMONO_CONFIG points to missing file {path}, using defaults")

    tomono_dir = Path.home() / '.tomono'
    for filename in CONFIG_FILENAMES:
        path = tomono_dir / filename
        if path.exists():
            return path

    return tomono_dir / 'config.json'


def get_default_config():
    """Get default configuration."""
    return {
        "consolidation": {
            "baseline_branch": "master",
            "exclude_branches": ["bazel-mig-"],
            "prune_merged": True,
            "target_remote": "origin",
        },
        "git": {
            "timeout": 600,  # Seconds, network operations only
            "tmpdir": None,
        },
        "logging": {
            "level": "INFO",
        },
    }


def _read_config_file(config_path):
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    if suffix in ('.yaml', '.yml'):
        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}
    with open(config_path, 'r') as f:
        return json.load(f)


def load_config():
    """Load configuration from file, then apply environment overrides."""
    config_path = get_config_path()

    config = get_default_config()

    if config_path.exists():
        try:
            file_config = _read_config_file(config_path)
        except (OSError, ValueError, tomllib.TOMLDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading config from {config_path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")
        config = merge_configs(config, file_config)

    return apply_env_overrides(config)


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def _typed(value):
    if value.lower() in ('true', '1', 'yes', 'on'):
        return True
    if value.lower() in ('false', '0', 'no', 'off'):
        return False
    if value.isdigit():
        return int(value)
    return value


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.

    Environment variables follow the pattern: TOMONO_SECTION_KEY
    For example: TOMONO_CONSOLIDATION_PRUNE_MERGED=false

    GIT_TMPDIR is honoured as well and sets git.tmpdir.
    """
    env_prefix = "TOMONO_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix) or env_key == "TOMONO_CONFIG":
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')
        typed_value = _typed(value)

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i : i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if not matched_key:
                break

            if i + best_match_len == len(key_parts):
                if isinstance(current_level[matched_key], list) and isinstance(typed_value, str):
                    typed_value = [v.strip() for v in typed_value.split(',') if v.strip()]
                current_level[matched_key] = typed_value
                break

            if not isinstance(current_level[matched_key], dict):
                break
            current_level = current_level[matched_key]
            i += best_match_len

    if os.environ.get('GIT_TMPDIR'):
        config.setdefault('git', {})['tmpdir'] = os.environ['GIT_TMPDIR']

    return config
