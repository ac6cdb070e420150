"""
Tests for the CLI shell, entry point and logging setup.
"""

import json
import logging

import pytest
from prompt_toolkit.keys import Keys

from willhaben_cli.__main__ import build_parser
from willhaben_cli.cli import KEY_MAP, WillhabenCLI, key_press_for
from willhaben_cli.config import Config
from willhaben_cli.logging_config import JSONFormatter, setup_logging
from willhaben_cli.navigation import Key, KeyPress, Section


class TestKeyMapping:
    def test_printable(self):
        assert key_press_for("a") == KeyPress(Key.CHAR, "a")
        assert key_press_for(" ") == KeyPress(Key.CHAR, " ")
        assert key_press_for("ö") == KeyPress(Key.CHAR, "ö")

    def test_control_sequences_ignored(self):
        assert key_press_for("\x1b[15~") is None
        assert key_press_for("\x00") is None

    def test_navigation_keys_mapped(self):
        assert set(KEY_MAP.values()) == {
            Key.UP, Key.DOWN, Key.LEFT, Key.RIGHT, Key.ENTER, Key.ESCAPE, Key.TAB, Key.BACKSPACE,
        }


class TestWillhabenCLI:
    def test_builds_session_from_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WILLHABEN_COOKIES", "bbxid=abc")
        cli = WillhabenCLI(config=Config(tmp_path / "config.yaml"))
        assert cli.client.cookies == "bbxid=abc"
        assert cli.session.state.section is Section.SEARCH

    def test_keybindings_forward_to_session(self, tmp_path):
        cli = WillhabenCLI(config=Config(tmp_path / "config.yaml"))
        kb = cli._create_keybindings()
        assert len(kb.bindings) >= len(KEY_MAP) + 2

        # "/" outside search opens the command palette through the <any> binding
        cli.session.controller.focus(Section.PRODUCTS)
        any_binding = next(b for b in kb.bindings if b.keys == (Keys.Any,))
        any_binding.handler(type("Event", (), {"data": "/"})())
        assert cli.session.state.section is Section.COMMAND

    def test_exit_without_running_app(self, tmp_path):
        cli = WillhabenCLI(config=Config(tmp_path / "config.yaml"))
        cli.session.exit()
        assert cli.session.exited


class TestArgs:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.query is None
        assert not args.verbose

    def test_flags(self):
        args = build_parser().parse_args(["-q", "rennrad", "--width", "80", "--contrast", "high", "-v"])
        assert args.query == "rennrad"
        assert args.width == "80"
        assert args.contrast == "high"
        assert args.verbose

    def test_rejects_unknown_width(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--width", "77"])


class TestLogging:
    def test_json_formatter_extra_fields(self):
        record = logging.LogRecord("willhaben.client", logging.INFO, __file__, 1, "Search", None, None)
        record.query = "rennrad"
        record.page = 2
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "Search"
        assert data["logger"] == "willhaben.client"
        assert data["query"] == "rennrad"
        assert data["page"] == 2

    def test_setup_writes_to_home(self, willhaben_home):
        logger = setup_logging()
        logging.getLogger("willhaben.test").info("hello", extra={"listing_id": "42"})
        for handler in logger.handlers:
            handler.flush()

        lines = (willhaben_home / "logs" / "willhaben.log").read_text().splitlines()
        last = json.loads(lines[-1])
        assert last["message"] == "hello"
        assert last["listing_id"] == "42"

        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
