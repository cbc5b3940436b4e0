"""
Configuration management for the Škola OnLine widget.

- Loads and merges defaults, environment variables, and CLI args (in that order).
- Validates configuration.
- Prepares the config dictionary for the application.
"""

import os

from skolaonline_widget import logger
from skolaonline_widget.constants import (
    CONNECTIVITY_NOTICE_AFTER,
    CONNECTIVITY_RETRY_DELAY,
    CREDENTIALS_FILE,
    REQUEST_TIMEOUT,
    STATE_DIR,
    WIDGET_STATE_FILE,
)

DEFAULT_CONFIG = {
    "state_dir": STATE_DIR,
    "timeout": REQUEST_TIMEOUT,
    "retry_delay": CONNECTIVITY_RETRY_DELAY,
    "connectivity_notice_after": CONNECTIVITY_NOTICE_AFTER,
    "max_connectivity_retries": None,
    "relative_labels": False,
    "deduplicate_slots": True,
    "single_room_teacher_only": True,
    "land_on_today": False,
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}

def _parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"Not a boolean value: {value!r}")

# Environment variable -> (config key, converter)
ENV_VARIABLES = {
    "SKOLAONLINE_STATE_DIR": ("state_dir", str),
    "SKOLAONLINE_TIMEOUT": ("timeout", float),
    "SKOLAONLINE_RETRY_DELAY": ("retry_delay", float),
    "SKOLAONLINE_RELATIVE_LABELS": ("relative_labels", _parse_bool),
}

def _apply_environment(config: dict, environ) -> None:
    for name, (key, convert) in ENV_VARIABLES.items():
        raw = environ.get(name)
        if raw is None:
            continue
        try:
            config[key] = convert(raw)
        except ValueError as e:
            raise ValueError(f"Invalid value for {name}: {e}") from e
        logger.debug(f"Config {key} taken from {name}")

def _apply_args(config: dict, args) -> None:
    if args is None:
        return
    if getattr(args, "state_dir", None):
        config["state_dir"] = args.state_dir
    if getattr(args, "timeout", None) is not None:
        config["timeout"] = args.timeout
    if getattr(args, "relative_labels", False):
        config["relative_labels"] = True
    if getattr(args, "keep_all_slots", False):
        config["deduplicate_slots"] = False
    if getattr(args, "first_room_teacher", False):
        config["single_room_teacher_only"] = False
    if getattr(args, "land_on_today", False):
        config["land_on_today"] = True
    if getattr(args, "max_connectivity_retries", None) is not None:
        config["max_connectivity_retries"] = args.max_connectivity_retries

def validate_config(config: dict) -> None:
    """Raise ValueError when a setting is out of range."""
    if config["timeout"] <= 0:
        raise ValueError("timeout must be positive")
    if config["retry_delay"] < 0:
        raise ValueError("retry_delay must not be negative")
    if config["connectivity_notice_after"] < 1:
        raise ValueError("connectivity_notice_after must be at least 1")
    retries = config["max_connectivity_retries"]
    if retries is not None and retries < 0:
        raise ValueError("max_connectivity_retries must not be negative")

def load_config(args=None, environ=None):
    """
    Prepare and validate configuration.

    Args:
        args: Parsed CLI arguments (argparse.Namespace) or None
        environ: Environment mapping, defaults to os.environ

    Returns:
        dict: Config with derived file paths
    """
    config = dict(DEFAULT_CONFIG)
    _apply_environment(config, os.environ if environ is None else environ)
    _apply_args(config, args)
    validate_config(config)

    state_dir = config["state_dir"]
    config["state_path"] = os.path.join(state_dir, WIDGET_STATE_FILE)
    config["credentials_path"] = os.path.join(state_dir, CREDENTIALS_FILE)
    config["args"] = args

    logger.debug(f"Using state directory {state_dir}")
    return config
