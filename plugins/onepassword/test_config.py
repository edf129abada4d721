#!/usr/bin/env python3
"""Tests for loading plugin configuration."""

import logging

from config import Config, load_config


class TestLoadConfig:
    """Tests for reading the JSON config file."""

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "nope.json") == Config(10, "op", "")

    def test_values_read(self, tmp_path):
        path = tmp_path / "onepassword.json"
        path.write_text('{"max_entries": 5, "op_path": "/opt/op", "prefix": "1p "}')
        assert load_config(path) == Config(max_entries=5, op_path="/opt/op", prefix="1p ")

    def test_partial_file(self, tmp_path):
        path = tmp_path / "onepassword.json"
        path.write_text('{"prefix": ":"}')
        assert load_config(path) == Config(prefix=":")

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "onepassword.json"
        path.write_text('{"theme": "dark"}')
        assert load_config(path) == Config()

    def test_invalid_json_warns(self, tmp_path, caplog):
        path = tmp_path / "onepassword.json"
        path.write_text("max_entries = 5")
        with caplog.at_level(logging.WARNING):
            assert load_config(path) == Config()
        assert "Error reading" in caplog.text

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "onepassword.json"
        path.write_text("[1, 2]")
        assert load_config(path) == Config()


class TestConfigFromDict:
    """Tests for per-key validation."""

    def test_bad_max_entries(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert Config.from_dict({"max_entries": "ten"}).max_entries == 10
        assert "max_entries" in caplog.text

    def test_negative_max_entries(self):
        assert Config.from_dict({"max_entries": -1}).max_entries == 10

    def test_bool_is_not_a_count(self):
        assert Config.from_dict({"max_entries": True}).max_entries == 10

    def test_zero_max_entries_allowed(self):
        assert Config.from_dict({"max_entries": 0}).max_entries == 0

    def test_bad_op_path(self):
        assert Config.from_dict({"op_path": ""}).op_path == "op"
        assert Config.from_dict({"op_path": 7}).op_path == "op"

    def test_bad_prefix_keeps_others(self):
        config = Config.from_dict({"prefix": None, "max_entries": 3})
        assert config == Config(max_entries=3)
