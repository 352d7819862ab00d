#!/usr/bin/env python3

import os
import re
import json
import tomllib
from pathlib import Path

import logging
import sys

import toml
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
logger = logging.getLogger("profilehub")

DEBUG_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

REPOSITORY_PATTERN = re.compile(r'^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$')

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. PROFILEHUB_CONFIG environment variable
    2. ~/.profilehub/ directory
    """
    if 'PROFILEHUB_CONFIG' in os.environ:
        path = Path(os.environ['PROFILEHUB_CONFIG'])
        if path.exists():
            return path

    config_dir = Path.home() / '.profilehub'
    for filename in CONFIG_FILENAMES:
        path = config_dir / filename
        if path.exists() and path.stat().st_size > 10:  # Not empty/trivial
            return path

    # If no file exists, return default path for saving
    return config_dir / 'config.json'


def read_config_file(config_path, strict=False):
    """
    Read the raw settings stored in a config file, without defaults or env overrides.

    Unreadable files yield an empty dict, or raise ConfigError when ``strict``.
    """
    if not config_path.exists():
        return {}

    try:
        if config_path.suffix.lower() in ['.toml']:
            with open(config_path, 'rb') as f:
                file_config = tomllib.load(f)
        elif config_path.suffix.lower() in ['.yaml', '.yml']:
            with open(config_path, 'r') as f:
                file_config = yaml.safe_load(f) or {}
        else:
            # Default to JSON format
            with open(config_path, 'r') as f:
                file_config = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        if strict:
            raise ConfigError(f"Error loading config from {config_path}: {e}") from e
        logger.error(f"Error loading config from {config_path}: {e}")
        return {}

    return file_config or {}


def load_config():
    """Load configuration from file."""
    # Start with default config, merge the file over it
    config = merge_configs(get_default_config(), read_config_file(get_config_path()))

    # Apply environment variable overrides
    config = apply_env_overrides(config)

    return config


def save_config(config):
    """Save configuration to file."""
    config_path = get_config_path()

    try:
        # Create directory if it doesn't exist
        config_path.parent.mkdir(parents=True, exist_ok=True)

        if config_path.suffix.lower() in ['.toml']:
            with open(config_path, 'w') as f:
                toml.dump(config, f)
        elif config_path.suffix.lower() in ['.yaml', '.yml']:
            with open(config_path, 'w') as f:
                yaml.safe_dump(config, f, default_flow_style=False)
        else:
            # Default to JSON format
            with open(config_path, 'w') as f:
                json.dump(config, f, indent=2)

        logger.debug(f"Configuration saved to {config_path}")
    except OSError as e:
        raise ConfigError(f"Error saving config to {config_path}: {e}") from e

    return config_path


def get_default_config():
    """Get default configuration."""
    return {
        "general": {
            "profiles_dir": "~/.profilehub/profiles",
            "builtin_profiles_dir": "",
            "injected_command": "",
            "target_dir": "."
        },
        "marketplace": {
            "repository": "profilehub/marketplace",
            "base_branch": "main"
        },
        "github": {
            "api_url": "https://api.github.com",
            "web_url": "https://github.com",
            "raw_url": "https://raw.githubusercontent.com",
            "oauth_client_id": "",
            "oauth_scope": "public_repo",
            "user_agent": "profilehub",
            "timeout_seconds": 30,
            "credential_host": "github.com"
        },
        "credentials": {
            "timeout_seconds": 10
        },
        "device_flow": {
            "min_interval": 5,
            "slow_down_increment": 5,
            "default_expires_in": 900
        },
        "fork": {
            "poll_attempts": 30,
            "poll_interval": 2
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        }
    }


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
            # Recursively merge nested dictionaries
            merged[key] = merge_configs(merged[key], value)
        else:
            # Override or add new key
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: PROFILEHUB_SECTION_KEY
    For example: PROFILEHUB_GITHUB_OAUTH_CLIENT_ID=Iv1.abc123
    """
    env_prefix = "PROFILEHUB_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix) or env_key == 'PROFILEHUB_CONFIG':
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        # Convert value
        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

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

            # End of the env var: this is the key to set
            if i + best_match_len == len(key_parts):
                current_level[matched_key] = typed_value
                break

            if not isinstance(current_level[matched_key], dict):
                # Path conflict, env var is longer than the config path
                break
            current_level = current_level[matched_key]
            i += best_match_len

    return config


def configure_logging(config=None, debug: bool = False) -> None:
    """Apply the logging section of the config to the package logger."""
    if debug:
        logging.basicConfig(level=logging.DEBUG, format=DEBUG_LOG_FORMAT, force=True)
        logger.setLevel(logging.DEBUG)
        return

    log_config = (config or {}).get('logging', {})
    level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    logger.setLevel(level)
    log_format = log_config.get('format')
    if log_format:
        for handler in logging.getLogger().handlers:
            handler.setFormatter(logging.Formatter(log_format))


def set_marketplace_repository(repository: str):
    """
    Persist a new marketplace repository.

    Only the stored file is rewritten, so defaults and environment
    overrides stay out of it.

    Args:
        repository: Repository in owner/repo form

    Returns:
        Path the configuration was written to
    """
    if not REPOSITORY_PATTERN.match(repository):
        raise ConfigError("Invalid repository format. Use: owner/repo")

    stored = read_config_file(get_config_path(), strict=True)
    if not isinstance(stored, dict):
        raise ConfigError(f"Config file {get_config_path()} does not hold a mapping")
    if not isinstance(stored.get('marketplace'), dict):
        stored['marketplace'] = {}
    stored['marketplace']['repository'] = repository
    return save_config(stored)
