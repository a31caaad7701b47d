"""Configuration loading and persistence for jenkins-tui.

The connection profile lives in a YAML file:

    profile:
      base_url: https://jenkins.example.com
      username: alice
      api_token: 11aa...
      timeout_seconds: 15

Missing keys take the defaults below. ``JENKINS_TUI_CONFIG`` points at an
alternative file and ``JENKINS_API_TOKEN`` overrides the stored token.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from jenkins_sdk import JenkinsClient
from jenkins_sdk.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "JENKINS_TUI_CONFIG"
TOKEN_ENV_VAR = "JENKINS_API_TOKEN"

DEFAULT_TIMEOUT_SECONDS = 15
DEFAULT_AUTO_REFRESH_SECONDS = 10
DEFAULT_MAX_BUILDS_PER_JOB = 200
DEFAULT_MAX_LOG_BYTES = 200_000
DEFAULT_RATE_LIMIT_RPS = 5.0

# Refresh intervals below this are raised to the default
MIN_AUTO_REFRESH_SECONDS = 5

_HEADER = "# Jenkins TUI Configuration\n\n"

_TRUE_WORDS = frozenset({"true", "yes", "on", "1"})
_FALSE_WORDS = frozenset({"false", "no", "off", "0"})


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    word = str(value).strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _to_int(value: Any) -> int:
    if isinstance(value, (bool, list, dict)):
        raise TypeError(f"not a number: {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"not a whole number: {value!r}")
    return int(value)


def _to_float(value: Any) -> float:
    if isinstance(value, (bool, list, dict)):
        raise TypeError(f"not a number: {value!r}")
    return float(value)


def _to_str(value: Any) -> str:
    if isinstance(value, (list, dict)):
        raise TypeError(f"not a string: {value!r}")
    return str(value)


# Keyed by the annotation text of each Profile field
_CONVERTERS = {"bool": _to_bool, "int": _to_int, "float": _to_float, "str": _to_str}


@dataclass
class Profile:
    """Connection profile for one Jenkins server."""

    base_url: str = ""
    username: str = ""
    api_token: str = ""
    insecure_skip_tls_verify: bool = False
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    auto_refresh_seconds: int = DEFAULT_AUTO_REFRESH_SECONDS
    max_builds_per_job: int = DEFAULT_MAX_BUILDS_PER_JOB
    max_log_bytes: int = DEFAULT_MAX_LOG_BYTES
    rate_limit_rps: float = DEFAULT_RATE_LIMIT_RPS

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Profile:
        """Build a profile from a loaded YAML mapping.

        Values are converted to the field types, so ``timeout_seconds: "20"``
        and ``insecure_skip_tls_verify: "no"`` are accepted. Null values
        keep the default.

        Raises:
            ConfigurationError: If a value cannot be converted.
        """
        known = {f.name: f for f in fields(cls)}
        unknown = set(data) - set(known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))

        values = {}
        for name, value in data.items():
            if name not in known or value is None:
                continue
            try:
                values[name] = _CONVERTERS[known[name].type](value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid value for {name}: {value!r}") from e
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.username and self.api_token)

    def validate(self) -> None:
        """Check required fields and reset out-of-range numbers to defaults.

        Raises:
            ConfigurationError: If base_url, username or api_token is empty.
        """
        for name in ("base_url", "username", "api_token"):
            if not str(getattr(self, name) or "").strip():
                raise ConfigurationError(f"{name} is required")
        if self.timeout_seconds <= 0:
            self.timeout_seconds = DEFAULT_TIMEOUT_SECONDS
        if self.auto_refresh_seconds <= 0:
            self.auto_refresh_seconds = DEFAULT_AUTO_REFRESH_SECONDS
        if self.max_builds_per_job <= 0:
            self.max_builds_per_job = DEFAULT_MAX_BUILDS_PER_JOB
        if self.max_log_bytes <= 0:
            self.max_log_bytes = DEFAULT_MAX_LOG_BYTES
        if self.rate_limit_rps <= 0:
            self.rate_limit_rps = DEFAULT_RATE_LIMIT_RPS

    @property
    def refresh_interval(self) -> int:
        """Auto-refresh interval in seconds, never below the floor."""
        if self.auto_refresh_seconds < MIN_AUTO_REFRESH_SECONDS:
            return DEFAULT_AUTO_REFRESH_SECONDS
        return self.auto_refresh_seconds


def get_config_dir() -> Path:
    """Directory holding config.yaml and the logs/ directory."""
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if not appdata:
            raise ConfigurationError("APPDATA environment variable not set")
        return Path(appdata) / "jenkins-tui"
    return Path.home() / ".config" / "jenkins-tui"


def get_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return get_config_dir() / "config.yaml"


def get_logs_dir() -> Path:
    return get_config_dir() / "logs"


def load_config(path: Path | None = None) -> Profile:
    """Load the profile, falling back to defaults when no file exists.

    Raises:
        ConfigurationError: If the file exists but is not valid YAML or holds
            a value of the wrong type.
    """
    path = path or get_config_path()
    profile = Profile()
    if path.exists():
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing config file {path}: {e}") from e
        section = data.get("profile", {}) if isinstance(data, dict) else {}
        if not isinstance(section, dict):
            raise ConfigurationError(f"'profile' in {path} must be a mapping")
        profile = Profile.from_dict(section)
    else:
        logger.info("No config file at %s, setup required", path)

    token = os.environ.get(TOKEN_ENV_VAR)
    if token:
        profile.api_token = token
    return profile


def save_config(profile: Profile, path: Path | None = None) -> Path:
    """Write the profile to disk, creating the directory if needed."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(_HEADER)
        yaml.safe_dump({"profile": profile.to_dict()}, f, default_flow_style=False, sort_keys=False)
    try:
        path.chmod(0o600)
    except OSError:
        logger.debug("Could not restrict permissions on %s", path)
    logger.info("Saved config to %s", path)
    return path


def build_client(profile: Profile) -> JenkinsClient:
    """Create a client for a validated profile."""
    profile.validate()
    return JenkinsClient(
        base_url=profile.base_url,
        username=profile.username,
        token=profile.api_token,
        timeout=profile.timeout_seconds,
        rate_limit_rps=profile.rate_limit_rps,
        verify_tls=not profile.insecure_skip_tls_verify,
    )
