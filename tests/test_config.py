"""
Tests for configuration: keyword arguments, CALDAV_* environment
variables and the JSON config file.
"""
import json

import pytest

from caldavsync import config as config_module
from caldavsync.config import ClientConfig
from caldavsync.config import DEFAULT_PRODID
from caldavsync.config import config_section
from caldavsync.config import get_config
from caldavsync.config import read_config


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for key in (
        "CALDAV_URL",
        "CALDAV_USERNAME",
        "CALDAV_PASSWORD",
        "CALDAV_TOKEN",
        "CALDAV_TIMEOUT",
        "CALDAV_CONFIG_FILE",
        "CALDAV_CONFIG_SECTION",
    ):
        monkeypatch.delenv(key, raising=False)
    ## keep the default config file locations out of reach
    monkeypatch.setenv("HOME", str(tmp_path))
    return monkeypatch


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "calendar.conf"
    path.write_text(
        json.dumps(
            {
                "default": {
                    "caldav_url": "https://cal.example.com/dav/",
                    "caldav_user": "alice",
                    "caldav_pass": "secret",
                },
                "work": {
                    "inherits": "default",
                    "caldav_user": "alice.w",
                    "caldav_timeout": 10,
                },
            }
        )
    )
    return str(path)


class TestClientConfig:
    def test_module_documents_file_format(self):
        assert "inherits" in config_module.__doc__

    def test_defaults(self):
        config = ClientConfig(url="https://example.com/")
        assert config.timeout == 30
        assert config.prodid == DEFAULT_PRODID
        assert config.log_requests is False
        assert config.ssl_verify_cert is True
        assert config.discovery_path is None

    def test_url_required(self):
        with pytest.raises(ValueError):
            ClientConfig(url="")
        with pytest.raises(ValueError):
            ClientConfig.from_dict({"username": "alice"})

    def test_frozen(self):
        config = ClientConfig(url="https://example.com/")
        with pytest.raises(AttributeError):
            config.url = "https://other.com/"

    def test_from_dict_converts_strings(self):
        config = ClientConfig.from_dict(
            {
                "url": "https://example.com/",
                "user": "alice",
                "pass": "secret",
                "timeout": "12.5",
                "log_requests": "true",
                "ssl_verify_cert": "/etc/ssl/ca.pem",
                "calendar_url": "ignored",
            }
        )
        assert config.username == "alice"
        assert config.password == "secret"
        assert config.timeout == 12.5
        assert config.log_requests is True
        assert config.ssl_verify_cert == "/etc/ssl/ca.pem"


class TestConfigFile:
    def test_read_config(self, config_file):
        assert "default" in read_config(config_file)

    def test_missing_file(self, tmp_path):
        assert read_config(str(tmp_path / "nope.conf")) == {}

    def test_broken_file(self, tmp_path):
        path = tmp_path / "broken.conf"
        path.write_text("{not json")
        assert read_config(str(path)) == {}

    def test_inheritance(self, config_file):
        section = config_section(read_config(config_file), "work")
        assert section["caldav_url"] == "https://cal.example.com/dav/"
        assert section["caldav_user"] == "alice.w"
        assert section["caldav_pass"] == "secret"


class TestGetConfig:
    def test_keyword_arguments_first(self, clean_env):
        clean_env.setenv("CALDAV_URL", "https://env.example.com/")
        config = get_config(url="https://kw.example.com/", username="bob")
        assert config.url == "https://kw.example.com/"
        assert config.username == "bob"

    def test_environment(self, clean_env):
        clean_env.setenv("CALDAV_URL", "https://env.example.com/")
        clean_env.setenv("CALDAV_USERNAME", "carol")
        clean_env.setenv("CALDAV_TOKEN", "tok")
        clean_env.setenv("CALDAV_TIMEOUT", "5")
        config = get_config()
        assert config.url == "https://env.example.com/"
        assert config.username == "carol"
        assert config.token == "tok"
        assert config.timeout == 5.0

    def test_config_file_section(self, clean_env, config_file):
        clean_env.setenv("CALDAV_CONFIG_FILE", config_file)
        clean_env.setenv("CALDAV_CONFIG_SECTION", "work")
        config = get_config()
        assert config.url == "https://cal.example.com/dav/"
        assert config.username == "alice.w"
        assert config.password == "secret"
        assert config.timeout == 10

    def test_config_file_default_section(self, clean_env, config_file):
        config = get_config(config_file=config_file, environment=False)
        assert config.username == "alice"

    def test_nothing_configured(self, clean_env):
        with pytest.raises(ValueError):
            get_config()
