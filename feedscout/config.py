"""Config file support for feedscout.

Loads default CLI arguments from:
  1. ~/.feedscout.yaml  (user-level)
  2. ./feedscout.yaml   (project-level, overrides user-level)

Example config file:

    # ~/.feedscout.yaml
    format: json
    timeout: 5
    page-timeout: 12
    no_apple: true
    strict: true
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

_BOOL_FIELDS = {"verbose", "quiet", "strict", "no_reddit", "no_apple"}
_INT_FIELDS = {"workers"}
_FLOAT_FIELDS = {"timeout", "page_timeout", "metadata_timeout"}
_STR_FIELDS = {"format", "output"}


def config_paths():
    return [
        Path.home() / ".feedscout.yaml",
        Path.home() / ".feedscout.yml",
        Path("feedscout.yaml"),
        Path("feedscout.yml"),
    ]


def load_config() -> Dict[str, Any]:
    """Load config from YAML files, merging user + project level."""
    config: Dict[str, Any] = {}

    for p in config_paths():
        if not p.is_file():
            continue
        try:
            with open(p, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"[Config] Failed to load {p}: {e}")
            continue
        if isinstance(data, dict):
            # Normalize keys: dashes → underscores
            config.update({str(k).replace("-", "_"): v for k, v in data.items()})
            logger.debug(f"[Config] Loaded {p}")
        else:
            logger.warning(f"[Config] Ignoring {p}: expected a mapping")

    return config


def load_env_config() -> Dict[str, Any]:
    """Load config from FEEDSCOUT_* environment variables.

    Maps FEEDSCOUT_FORMAT=json → format=json, FEEDSCOUT_TIMEOUT=5 → timeout=5.0.
    Boolean vars: FEEDSCOUT_QUIET=1, FEEDSCOUT_NO_REDDIT=true, etc.
    """
    prefix = "FEEDSCOUT_"
    config: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        field = key[len(prefix):].lower()
        if field in _BOOL_FIELDS:
            config[field] = value.lower() in ("1", "true", "yes", "on")
        elif field in _INT_FIELDS:
            try:
                config[field] = int(value)
            except ValueError:
                logger.warning(f"[Config] Ignoring {key}={value!r}: not an integer")
        elif field in _FLOAT_FIELDS:
            try:
                config[field] = float(value)
            except ValueError:
                logger.warning(f"[Config] Ignoring {key}={value!r}: not a number")
        elif field in _STR_FIELDS:
            config[field] = value
    return config


def _coerce(key: str, value: Any) -> Any:
    if key in _BOOL_FIELDS:
        if isinstance(value, str):
            return value.lower() in ("1", "true", "yes", "on")
        return bool(value)
    if key in _INT_FIELDS:
        return int(value)
    if key in _FLOAT_FIELDS:
        return float(value)
    return str(value)


def apply_config_defaults(parser, args):
    """Apply config file defaults to unset CLI args (CLI always wins).

    Priority: CLI flags > env vars (FEEDSCOUT_*) > config files > parser defaults.
    """
    config = load_config()
    # Env vars override file config
    config.update(load_env_config())
    if not config:
        return args

    known = _BOOL_FIELDS | _INT_FIELDS | _FLOAT_FIELDS | _STR_FIELDS
    for key, value in config.items():
        if key not in known or not hasattr(args, key):
            continue
        # Only apply if the CLI arg wasn't explicitly provided
        if getattr(args, key) != parser.get_default(key):
            continue
        try:
            setattr(args, key, _coerce(key, value))
        except (TypeError, ValueError):
            logger.warning(f"[Config] Ignoring {key}={value!r}: wrong type")

    return args


_STARTER_CONFIG = """\
# feedscout configuration. Customize your defaults here.
# CLI flags always override these values.

# Output format: console, json, urls
# format: console

# Per-probe feed validation deadline (seconds)
# timeout: 8

# Deadline for HTML pages and the Apple Podcasts lookup (seconds)
# page_timeout: 10

# Deadline for icon lookups (seconds)
# metadata_timeout: 5

# Max parallel probes per discovery
# workers: 16

# Exit with status 1 when no feeds are found
# strict: false

# Suppress status messages
# quiet: false

# Skip specific services
# no_reddit: false
# no_apple: false
"""


def generate_starter_config() -> Path:
    """Write a starter config file to ~/.feedscout.yaml (won't overwrite existing)."""
    path = Path.home() / ".feedscout.yaml"
    if path.exists():
        path = Path.home() / ".feedscout.yaml.new"
    path.write_text(_STARTER_CONFIG, encoding="utf-8")
    return path
