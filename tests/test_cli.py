import asyncio
import json
from datetime import date

import pytest

from skolaonline_widget.app.application import Application
from skolaonline_widget.app.cli import parse_args, render_snapshot
from skolaonline_widget.constants import MSG_FREE_DAY
from skolaonline_widget.extractors import normalize_timetable
from skolaonline_widget.interface.config_manager import load_config
from skolaonline_widget.main import main
from skolaonline_widget.models import NavigationState, RefreshState, WidgetSnapshot

def test_parse_commands():
    args = parse_args(["--relative-labels", "set-token", "abc"])

    assert args.command == "set-token"
    assert args.token == "abc"
    assert args.relative_labels is True
    assert args.log_level == "WARNING"

def test_command_is_required():
    with pytest.raises(SystemExit):
        parse_args([])

def test_render_free_day(make_document):
    window = normalize_timetable(make_document({}), date(2024, 6, 3))
    snapshot = WidgetSnapshot(days=window.days, navigation=NavigationState(current_day_index=1))

    output = render_snapshot(snapshot)

    assert output.splitlines()[0].startswith("Út 4.6.")
    assert MSG_FREE_DAY in output

def test_render_lessons_and_error(make_entry, make_document):
    document = make_document({"2024-06-03": [make_entry("2024-06-03", "1", hour_type="SUPLOVANI")]})
    window = normalize_timetable(document, date(2024, 6, 3))
    snapshot = WidgetSnapshot(days=window.days, refresh=RefreshState(error="Chyba rozvrhu"))

    output = render_snapshot(snapshot)

    assert "08:00-08:45" in output
    assert "Matematika (A12, Novák Jan) [substitute]" in output
    assert output.splitlines()[-1] == "! Chyba rozvrhu"

def test_set_token_show_and_clear(tmp_path, capsys):
    state_dir = str(tmp_path)

    assert asyncio.run(main(["--state-dir", state_dir, "set-token", " refresh-1 "])) == 0
    credentials = json.loads((tmp_path / "credentials.json").read_text(encoding="utf-8"))
    assert credentials == {"refresh_token": "refresh-1"}

    assert asyncio.run(main(["--state-dir", state_dir, "show"])) == 0
    assert "Žádná data" in capsys.readouterr().out

    assert asyncio.run(main(["--state-dir", state_dir, "clear"])) == 0
    credentials = json.loads((tmp_path / "credentials.json").read_text(encoding="utf-8"))
    assert credentials == {}

def test_application_stale_bound_follows_request_timeout(tmp_path):
    config = load_config(parse_args(["--state-dir", str(tmp_path), "--timeout", "10", "show"]), environ={})

    async def run():
        async with Application(config) as app:
            return app.navigation.stale_after

    # one attempt per request (see conftest) for token, identity and timetable
    assert asyncio.run(run()) == 3 * 10.0 + config["retry_delay"]
