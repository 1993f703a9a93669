"""Load test configuration and runtime settings for LoadPulse."""

from __future__ import annotations

import ipaddress
import math
import os
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from loadpulse._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

# Argument keys understood by ``LoadTestConfig.from_mapping``.
API_URL_KEY = "apiUrl"
VIRTUAL_USERS_KEY = "virtualUsers"
RATE_PER_VU_KEY = "ratePerVU"
DURATION_SECONDS_KEY = "durationSeconds"
TEST_ID_KEY = "testId"

_REQUIRED_KEYS = (API_URL_KEY, VIRTUAL_USERS_KEY, RATE_PER_VU_KEY, DURATION_SECONDS_KEY)
_OPTIONAL_KEYS = (TEST_ID_KEY,)

# Dot-separated labels of letters, digits, hyphens and underscores (ASCII form).
_HOSTNAME_RE = re.compile(r"[A-Za-z0-9_-]+(?:\.[A-Za-z0-9_-]+)*\.?")


@dataclass(frozen=True)
class LoadTestConfig:
    """Parameters of a single load test run.

    Instances are immutable; the orchestrator validates them with
    :func:`validate_config` before any virtual user starts.

    Attributes:
        target_url: Absolute http(s) URL every virtual user requests.
        virtual_users: Number of independent virtual users (>= 1).
        rate_per_user: Target requests per second for each virtual user.
            Fractional rates (e.g. 0.5) are allowed.
        duration_seconds: Length of the test window in whole seconds.
        test_id: Opaque identifier copied into the summary. May be empty.
    """

    target_url: str
    virtual_users: int
    rate_per_user: float
    duration_seconds: int
    test_id: str = ""

    @classmethod
    def from_mapping(cls, raw: Mapping[str, object]) -> LoadTestConfig:
        """Build a config from raw string-keyed arguments.

        Accepts exactly the keys ``apiUrl``, ``virtualUsers``, ``ratePerVU``,
        ``durationSeconds`` and, optionally, ``testId``. Values may be
        strings (as received from a command line or environment) or
        already-typed numbers.

        Args:
            raw: Mapping of argument key to raw value.

        Returns:
            A validated LoadTestConfig.

        Raises:
            ConfigError: If a key is missing or unknown, or a value does not
                parse or is out of range.
        """
        missing = [key for key in _REQUIRED_KEYS if key not in raw]
        if missing:
            msg = f"Missing required argument(s): {', '.join(missing)}"
            raise ConfigError(msg)

        unknown = sorted(set(raw) - set(_REQUIRED_KEYS) - set(_OPTIONAL_KEYS))
        if unknown:
            msg = f"Unknown argument(s): {', '.join(unknown)}"
            raise ConfigError(msg)

        test_id = raw.get(TEST_ID_KEY)
        config = cls(
            target_url=str(raw[API_URL_KEY]).strip(),
            virtual_users=_parse_int(VIRTUAL_USERS_KEY, raw[VIRTUAL_USERS_KEY]),
            rate_per_user=_parse_float(RATE_PER_VU_KEY, raw[RATE_PER_VU_KEY]),
            duration_seconds=_parse_int(DURATION_SECONDS_KEY, raw[DURATION_SECONDS_KEY]),
            test_id="" if test_id is None else str(test_id),
        )
        validate_config(config)
        return config


def _parse_int(key: str, value: object) -> int:
    if isinstance(value, bool):
        msg = f"{key} must be an integer, got: {value!r}"
        raise ConfigError(msg)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        msg = f"{key} must be an integer, got: {value!r}"
        raise ConfigError(msg) from None


def _parse_float(key: str, value: object) -> float:
    if isinstance(value, bool):
        msg = f"{key} must be a number, got: {value!r}"
        raise ConfigError(msg)
    if isinstance(value, int | float):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        msg = f"{key} must be a number, got: {value!r}"
        raise ConfigError(msg) from None


def validate_config(config: LoadTestConfig) -> None:
    """Check types and ranges of every field of a load test config.

    Args:
        config: The configuration to check.

    Raises:
        ConfigError: On the first invalid field found.
    """
    _validate_url(config.target_url)

    if isinstance(config.virtual_users, bool) or not isinstance(config.virtual_users, int):
        msg = f"virtual_users must be an integer, got: {config.virtual_users!r}"
        raise ConfigError(msg)
    if config.virtual_users < 1:
        msg = f"virtual_users must be >= 1, got: {config.virtual_users}"
        raise ConfigError(msg)

    rate = config.rate_per_user
    if isinstance(rate, bool) or not isinstance(rate, int | float):
        msg = f"rate_per_user must be a number, got: {rate!r}"
        raise ConfigError(msg)
    if not math.isfinite(rate) or rate <= 0:
        msg = f"rate_per_user must be a positive number, got: {rate}"
        raise ConfigError(msg)

    duration = config.duration_seconds
    if isinstance(duration, bool) or not isinstance(duration, int):
        msg = f"duration_seconds must be an integer, got: {duration!r}"
        raise ConfigError(msg)
    if duration < 1:
        msg = f"duration_seconds must be >= 1, got: {duration}"
        raise ConfigError(msg)

    if not isinstance(config.test_id, str):
        msg = f"test_id must be a string, got: {config.test_id!r}"
        raise ConfigError(msg)


def _validate_url(url: object) -> None:
    if not isinstance(url, str) or not url.strip():
        msg = "target_url must be a non-empty URL"
        raise ConfigError(msg)

    if any(ch.isspace() or not ch.isprintable() for ch in url):
        msg = f"target_url must not contain whitespace or control characters, got: {url!r}"
        raise ConfigError(msg)

    try:
        parts = urlsplit(url)
        # Accessing .port validates it is numeric and in range
        _ = parts.port
    except ValueError as exc:
        msg = f"target_url is not a valid URL: {url!r} ({exc})"
        raise ConfigError(msg) from None

    if parts.scheme not in ("http", "https"):
        msg = f"target_url must use http or https, got: {url!r}"
        raise ConfigError(msg)
    if not parts.hostname:
        msg = f"target_url has no host: {url!r}"
        raise ConfigError(msg)
    if not _is_valid_host(parts.hostname):
        msg = f"target_url has an invalid host: {url!r}"
        raise ConfigError(msg)


def _is_valid_host(host: str) -> bool:
    """Return True for an IP literal or a syntactically valid (IDNA) hostname."""
    try:
        ipaddress.ip_address(host)
    except ValueError:
        pass
    else:
        return True

    try:
        ascii_host = host.encode("idna").decode("ascii")
    except UnicodeError:
        return False
    return _HOSTNAME_RE.fullmatch(ascii_host) is not None


@dataclass(frozen=True)
class RuntimeSettings:
    """Process-wide settings that do not change the test's semantics.

    Attributes:
        request_timeout: Total timeout for one request, in seconds.
        connection_pool_size: Maximum open connections per virtual user.
        publish_url: Endpoint receiving the summary message. Empty disables
            publishing.
        publish_timeout: Timeout for publishing the summary, in seconds.
    """

    request_timeout: float = 30.0
    connection_pool_size: int = 10
    publish_url: str = ""
    publish_timeout: float = 10.0


def load_settings() -> RuntimeSettings:
    """Load runtime settings from environment variables with defaults.

    Environment variables:
        LOADPULSE_TIMEOUT: Request timeout in seconds (default: 30.0).
        LOADPULSE_POOL_SIZE: Connections per virtual user (default: 10).
        LOADPULSE_PUBLISH_URL: Summary endpoint (default: disabled).
        LOADPULSE_PUBLISH_TIMEOUT: Publish timeout in seconds (default: 10.0).

    Returns:
        Populated RuntimeSettings instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    pool_size_str = os.environ.get("LOADPULSE_POOL_SIZE", "10")
    try:
        pool_size = int(pool_size_str)
    except ValueError:
        msg = f"LOADPULSE_POOL_SIZE must be an integer, got: {pool_size_str!r}"
        raise ConfigError(msg) from None

    if pool_size < 1:
        msg = f"LOADPULSE_POOL_SIZE must be >= 1, got: {pool_size}"
        raise ConfigError(msg)

    return RuntimeSettings(
        request_timeout=_positive_float_env("LOADPULSE_TIMEOUT", "30.0"),
        connection_pool_size=pool_size,
        publish_url=os.environ.get("LOADPULSE_PUBLISH_URL", "").strip(),
        publish_timeout=_positive_float_env("LOADPULSE_PUBLISH_TIMEOUT", "10.0"),
    )


def _positive_float_env(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        value = float(raw)
    except ValueError:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None

    if value <= 0:
        msg = f"{name} must be positive, got: {value}"
        raise ConfigError(msg)
    return value
