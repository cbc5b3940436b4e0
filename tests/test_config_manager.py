import os

import pytest

from skolaonline_widget.app.cli import parse_args
from skolaonline_widget.interface.config_manager import load_config

def test_defaults():
    config = load_config(parse_args(["show"]), environ={})

    assert config["state_dir"] == "skolaonline_widget_state"
    assert config["timeout"] == 15.0
    assert config["retry_delay"] == 5.0
    assert config["connectivity_notice_after"] == 3
    assert config["max_connectivity_retries"] is None
    assert config["relative_labels"] is False
    assert config["deduplicate_slots"] is True
    assert config["single_room_teacher_only"] is True
    assert config["state_path"] == os.path.join("skolaonline_widget_state", "widget_state.json")
    assert config["credentials_path"] == os.path.join("skolaonline_widget_state", "credentials.json")

def test_environment_overrides_defaults():
    environ = {
        "SKOLAONLINE_STATE_DIR": "/tmp/widget",
        "SKOLAONLINE_TIMEOUT": "7.5",
        "SKOLAONLINE_RETRY_DELAY": "1",
        "SKOLAONLINE_RELATIVE_LABELS": "yes",
    }

    config = load_config(None, environ=environ)

    assert config["state_dir"] == "/tmp/widget"
    assert config["timeout"] == 7.5
    assert config["retry_delay"] == 1.0
    assert config["relative_labels"] is True

def test_cli_arguments_override_environment():
    args = parse_args([
        "--state-dir", "cli-state", "--timeout", "3",
        "--keep-all-slots", "--first-room-teacher", "--land-on-today",
        "--max-connectivity-retries", "4", "refresh",
    ])

    config = load_config(args, environ={"SKOLAONLINE_STATE_DIR": "env-state", "SKOLAONLINE_TIMEOUT": "9"})

    assert config["state_dir"] == "cli-state"
    assert config["timeout"] == 3.0
    assert config["deduplicate_slots"] is False
    assert config["single_room_teacher_only"] is False
    assert config["land_on_today"] is True
    assert config["max_connectivity_retries"] == 4
    assert config["args"] is args

@pytest.mark.parametrize("environ", [
    {"SKOLAONLINE_TIMEOUT": "soon"},
    {"SKOLAONLINE_TIMEOUT": "0"},
    {"SKOLAONLINE_RELATIVE_LABELS": "maybe"},
])
def test_invalid_values_are_rejected(environ):
    with pytest.raises(ValueError):
        load_config(None, environ=environ)
