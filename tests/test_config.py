import json

import pytest

import lib.shared.config as config

OPTIONS = {
    "channelID" : { "required" : True,  "default" : "",  "description" : "Channel." },
    "reportDays" : { "required" : False, "default" : 7, "description" : "Days." },
}


class TestFromSpecification:

    def test_defaults_are_filled(self):
        cfg = config.Config.FromSpecification(OPTIONS, { "channelID" : "123" })
        assert cfg["channelID"] == "123"
        assert cfg["reportDays"] == 7

    def test_missing_required(self):
        with pytest.raises(config.ConfigError, match = "channelID"):
            config.Config.FromSpecification(OPTIONS, { "reportDays" : 3 })

    def test_empty_required(self):
        with pytest.raises(config.ConfigError):
            config.Config.FromSpecification(OPTIONS, { "channelID" : "" })

    def test_extras_are_kept(self):
        cfg = config.Config.FromSpecification(OPTIONS, { "channelID" : "1", "color" : "red" })
        assert "color" in cfg
        assert cfg.GetValue("color", None) == "red"
        assert cfg.GetValue("missing", 5) == 5


class TestFromFile:

    def test_missing_file_writes_fallback(self, tmp_path):
        path = tmp_path / "pluginCfg.json"
        cfg = config.Config.fromJSON(str(path), '{"channelID":"42"}')
        assert cfg["channelID"] == "42"
        assert json.loads(path.read_text()) == { "channelID" : "42" }

    def test_missing_file_without_fallback(self, tmp_path):
        assert config.Config.fromJSON(str(tmp_path / "none.json")) == None

    def test_invalid_json_uses_fallback(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{ not json")
        cfg = config.Config.fromJSON(str(path), '{"channelID":"42"}')
        assert cfg["channelID"] == "42"
        assert path.read_text() == "{ not json"

    def test_yaml(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("channelID: '7'\nreportDays: 3\n")
        cfg = config.Config.from_file(str(path))
        assert cfg["channelID"] == "7"
        assert cfg["reportDays"] == 3
