"""Tests for jenkins_tui.config: profile loading, saving and client creation."""

import stat
import sys
from unittest.mock import patch

import pytest
import yaml

from jenkins_sdk import ConfigurationError, JenkinsClient
from jenkins_tui.config import (
    CONFIG_ENV_VAR,
    DEFAULT_AUTO_REFRESH_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    TOKEN_ENV_VAR,
    Profile,
    build_client,
    get_config_path,
    load_config,
    save_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)


class TestProfile:
    def test_defaults_not_configured(self):
        assert not Profile().is_configured

    def test_configured(self, profile):
        assert profile.is_configured

    def test_validate_requires_credentials(self):
        with pytest.raises(ConfigurationError, match="api_token"):
            Profile(base_url="https://j", username="u").validate()

    def test_validate_resets_bad_numbers(self, profile):
        profile.timeout_seconds = 0
        profile.auto_refresh_seconds = -3
        profile.validate()
        assert profile.timeout_seconds == DEFAULT_TIMEOUT_SECONDS
        assert profile.auto_refresh_seconds == DEFAULT_AUTO_REFRESH_SECONDS

    @pytest.mark.parametrize("seconds,expected", [(3, DEFAULT_AUTO_REFRESH_SECONDS), (5, 5), (60, 60)])
    def test_refresh_interval_floor(self, seconds, expected):
        assert Profile(auto_refresh_seconds=seconds).refresh_interval == expected

    def test_from_dict_ignores_unknown_keys(self):
        profile = Profile.from_dict({"base_url": "https://j", "colour": "blue"})
        assert profile.base_url == "https://j"

    def test_from_dict_converts_quoted_values(self):
        profile = Profile.from_dict({
            "base_url": "https://j",
            "username": 1234,
            "timeout_seconds": "20",
            "rate_limit_rps": "2.5",
            "insecure_skip_tls_verify": "false",
        })
        assert profile.username == "1234"
        assert profile.timeout_seconds == 20
        assert profile.rate_limit_rps == 2.5
        assert profile.insecure_skip_tls_verify is False

    @pytest.mark.parametrize("word,expected", [("yes", True), ("On", True), ("no", False), ("0", False)])
    def test_from_dict_reads_boolean_words(self, word, expected):
        assert Profile.from_dict({"insecure_skip_tls_verify": word}).insecure_skip_tls_verify is expected

    @pytest.mark.parametrize("key,value", [
        ("rate_limit_rps", "fast"),
        ("timeout_seconds", "soon"),
        ("timeout_seconds", 1.5),
        ("max_log_bytes", True),
        ("insecure_skip_tls_verify", "maybe"),
        ("username", ["a", "b"]),
    ])
    def test_from_dict_rejects_unconvertible_values(self, key, value):
        with pytest.raises(ConfigurationError, match=key):
            Profile.from_dict({key: value})

    def test_from_dict_null_keeps_default(self):
        assert Profile.from_dict({"timeout_seconds": None}).timeout_seconds == DEFAULT_TIMEOUT_SECONDS


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        profile = load_config(tmp_path / "config.yaml")
        assert profile == Profile()

    def test_reads_profile_section(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "profile:\n"
            "  base_url: https://ci.example.com\n"
            "  username: bob\n"
            "  api_token: t0k\n"
            "  auto_refresh_seconds: 30\n"
        )
        profile = load_config(path)
        assert profile.base_url == "https://ci.example.com"
        assert profile.username == "bob"
        assert profile.auto_refresh_seconds == 30
        assert profile.timeout_seconds == DEFAULT_TIMEOUT_SECONDS

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == Profile()

    def test_wrongly_typed_value(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("profile:\n  rate_limit_rps: lots\n")
        with pytest.raises(ConfigurationError, match="rate_limit_rps"):
            load_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("profile: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_profile_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("profile: just-a-string\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_token_env_override(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("profile:\n  api_token: from-file\n")
        monkeypatch.setenv(TOKEN_ENV_VAR, "from-env")
        assert load_config(path).api_token == "from-env"

    def test_config_path_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "other.yaml"))
        assert get_config_path() == tmp_path / "other.yaml"

    def test_default_path_under_config_dir(self, tmp_path):
        with patch("jenkins_tui.config.get_config_dir", return_value=tmp_path):
            assert get_config_path() == tmp_path / "config.yaml"


class TestSaveConfig:
    def test_round_trip(self, tmp_path, profile):
        path = tmp_path / "sub" / "config.yaml"
        save_config(profile, path)
        assert load_config(path) == profile

    def test_written_as_profile_section(self, tmp_path, profile):
        path = save_config(profile, tmp_path / "config.yaml")
        text = path.read_text()
        assert text.startswith("# Jenkins TUI Configuration")
        assert yaml.safe_load(text)["profile"]["username"] == "alice"

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_owner_only_permissions(self, tmp_path, profile):
        path = save_config(profile, tmp_path / "config.yaml")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600


class TestBuildClient:
    def test_client_from_profile(self, profile):
        profile.insecure_skip_tls_verify = True
        profile.rate_limit_rps = 2
        client = build_client(profile)
        try:
            assert isinstance(client, JenkinsClient)
            assert client.base_url == profile.base_url
            assert client.session.verify is False
            assert client.limiter.rps == 2
        finally:
            client.close()

    def test_incomplete_profile(self):
        with pytest.raises(ConfigurationError):
            build_client(Profile(base_url="https://j"))
