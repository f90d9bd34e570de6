"""Tests for layered configuration."""

import pytest

from pyrsx.core.config import DEFAULTS, Config, config, get_config, set_config

from tests.conftest import write


class TestConfig:

    def test_defaults(self):
        cfg = Config(load_env=False)
        assert cfg.get("compiler.runtime") == "dom"
        assert cfg.get("compiler.ownership") == "shared"
        assert cfg.get_bool("compiler.trim_whitespace") is True
        assert cfg.get_list("compiler.raw_text_tags") == ["style", "script"]
        assert cfg.get("transform.marker") == "rsx"

    def test_none_values_fall_back_to_default(self):
        cfg = Config(load_env=False)
        assert cfg.get("metadata.attributes") is None
        assert cfg.get("metadata.attributes", "fallback") == "fallback"
        assert "metadata.attributes" not in cfg

    def test_missing_key(self):
        cfg = Config(load_env=False)
        assert cfg.get("compiler.nope", 5) == 5
        with pytest.raises(KeyError):
            cfg["compiler.nope"]

    def test_runtime_override_wins(self):
        cfg = Config(load_env=False)
        cfg.set("compiler.runtime", "ui")
        assert cfg.get("compiler.runtime") == "ui"
        assert cfg.get("compiler.events") == "events"

        cfg["compiler.events"] = "ev"
        assert cfg.section("compiler")["events"] == "ev"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PYRSX_COMPILER__OWNERSHIP", "exclusive")
        monkeypatch.setenv("PYRSX_COMPILER__STRICT_TAGS", "true")
        monkeypatch.setenv("PYRSX_COMPILER__RAW_TEXT_TAGS", '["style"]')

        cfg = Config()
        assert cfg.get("compiler.ownership") == "exclusive"
        assert cfg.get_bool("compiler.strict_tags") is True
        assert cfg.get_list("compiler.raw_text_tags") == ["style"]

    def test_runtime_beats_environment(self, monkeypatch):
        monkeypatch.setenv("PYRSX_COMPILER__RUNTIME", "env")
        cfg = Config()
        cfg.set("compiler.runtime", "runtime")
        assert cfg.get("compiler.runtime") == "runtime"

    def test_python_file_with_config_dict(self, tmp_path):
        path = write(tmp_path / "pyrsx_config.py", 'config = {"compiler": {"runtime": "ui"}}\n')
        cfg = Config(load_env=False)
        cfg.load_file(path)
        assert cfg.get("compiler.runtime") == "ui"
        assert cfg.get("compiler.events") == "events"

    def test_python_file_with_sections(self, tmp_path):
        path = write(tmp_path / "settings.py", 'transform = {"marker": "html"}\n_private = {"x": 1}\n')
        cfg = Config(load_env=False)
        cfg.load_file(path)
        assert cfg.get("transform.marker") == "html"
        assert cfg.get("_private") is None

    def test_environment_beats_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PYRSX_TRANSFORM__MARKER", "env")
        path = write(tmp_path / "settings.py", 'transform = {"marker": "file"}\n')
        cfg = Config()
        cfg.load_file(path)
        assert cfg.get("transform.marker") == "env"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config(load_env=False).load_file(tmp_path / "nope.py")

    def test_list_from_comma_string(self):
        cfg = Config(load_env=False)
        cfg.set("compiler.raw_text_tags", "style, script ,template")
        assert cfg.get_list("compiler.raw_text_tags") == ["style", "script", "template"]

    def test_defaults_are_not_mutated(self):
        cfg = Config(load_env=False)
        cfg.get_list("compiler.stream_methods").append("extra")
        cfg.all()["compiler"]["runtime"] = "changed"
        assert "extra" not in DEFAULTS["compiler"]["stream_methods"]
        assert DEFAULTS["compiler"]["runtime"] == "dom"


class TestGlobalConfig:

    def test_shortcut_uses_global(self, fresh_config):
        fresh_config.set("compiler.runtime", "ui")
        assert get_config() is fresh_config
        assert config("compiler.runtime") == "ui"

    def test_reset(self):
        set_config(None)
        assert get_config().get("compiler.runtime") == "dom"
