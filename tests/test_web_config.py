"""Tests for web configuration loading and saving."""

import json

import pytest

from site_safety.web.config import DEFAULT_MODEL, WebConfig


class TestWebConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        config = WebConfig()

        assert config.model == DEFAULT_MODEL
        assert config.ceiling_bytes == 1024 * 1024
        assert (config.min_width, config.min_height) == (400, 300)
        assert config.get_api_key() is None

    def test_api_key_follows_model(self):
        config = WebConfig(model="qwen-vl-max", google_api_key="g", qwen_api_key="q")
        assert config.get_api_key() == "q"
        config.model = "gemini-2.0-flash"
        assert config.get_api_key() == "g"
        config.model = "mock"
        assert config.get_api_key() is None

    def test_save_never_writes_keys(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        WebConfig(model="qwen-vl-max", qwen_api_key="secret", ceiling_bytes=500_000).save_to_file(path)

        saved = json.loads(path.read_text(encoding="utf-8"))
        assert saved["model"] == "qwen-vl-max"
        assert saved["ceiling_bytes"] == 500_000
        assert "secret" not in path.read_text(encoding="utf-8")

    def test_round_trip_through_file(self, tmp_path):
        path = tmp_path / "config.json"
        WebConfig(model="mock", language="en", min_width=640).save_to_file(path)

        loaded = WebConfig.load_from_file(path)

        assert loaded.model == "mock"
        assert loaded.language == "en"
        assert loaded.min_width == 640

    def test_missing_file(self, tmp_path):
        assert WebConfig.load_from_file(tmp_path / "absent.json").model == DEFAULT_MODEL

    def test_invalid_file_falls_back_to_defaults(self, tmp_path, caplog):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")

        config = WebConfig.load_from_file(path)

        assert config.model == DEFAULT_MODEL
        assert "Failed to load config file" in caplog.text

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"model": "qwen-vl-max", "ceiling_bytes": 100}), encoding="utf-8")
        monkeypatch.setenv("SITE_SAFETY_MODEL", "mock")
        monkeypatch.setenv("SITE_SAFETY_MIN_WIDTH", "800")

        config = WebConfig.load_from_file(path)

        assert config.model == "mock"
        assert config.ceiling_bytes == 100
        assert config.min_width == 800

    def test_invalid_limits_fall_back_to_defaults(self, caplog):
        config = WebConfig(ceiling_bytes="lots", min_width=-5)

        assert config.ceiling_bytes == 1024 * 1024
        assert config.min_width == 400
        assert "not an integer" in caplog.text

    def test_unknown_keys_are_ignored(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"model": "mock", "db_path": "/tmp/x"}), encoding="utf-8")
        assert WebConfig.load_from_file(path).model == "mock"

    def test_limits(self):
        config = WebConfig(ceiling_bytes=1000, min_width=10, min_height=20)
        assert config.limits() == {"ceiling_bytes": 1000, "min_width": 10, "min_height": 20}

    def test_repr_hides_keys(self):
        assert "secret" not in repr(WebConfig(google_api_key="secret"))


class TestServeCommand:
    def test_builds_app_from_config(self, tmp_path, monkeypatch):
        from click.testing import CliRunner

        from site_safety.web import __main__ as web_main

        calls = []
        monkeypatch.setattr(web_main.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
        path = tmp_path / "config.json"

        result = CliRunner().invoke(
            web_main.serve,
            ["--config", str(path), "--model", "mock", "--port", "9000", "--save-config"],
        )

        assert result.exit_code == 0
        assert "http://localhost:9000/docs" in result.output
        (app, kwargs) = calls[0]
        assert app.state.config.model == "mock"
        assert kwargs["port"] == 9000
        assert json.loads(path.read_text(encoding="utf-8"))["model"] == "mock"

    def test_main_runs_serve(self, monkeypatch):
        """The console script parses argv and starts uvicorn once."""
        from site_safety.web import __main__ as web_main

        calls = []
        monkeypatch.setattr(web_main.uvicorn, "run", lambda app, **kwargs: calls.append(app))
        monkeypatch.setattr("sys.argv", ["site-safety-web", "--model", "mock"])

        with pytest.raises(SystemExit) as exc_info:
            web_main.main()

        assert exc_info.value.code == 0
        assert len(calls) == 1


class TestModuleLevelApp:
    def test_import_does_not_build_an_app(self):
        from site_safety.web import api

        assert "app" not in vars(api)

    def test_app_is_built_once_on_first_access(self, monkeypatch):
        from site_safety.web import api

        built = []
        monkeypatch.setattr(api, "_app", None)
        monkeypatch.setattr(api, "create_app", lambda: built.append(object()) or built[-1])

        first = api.app
        second = api.app

        assert first is second
        assert len(built) == 1

    def test_unknown_attribute(self):
        from site_safety.web import api

        with pytest.raises(AttributeError):
            api.does_not_exist
