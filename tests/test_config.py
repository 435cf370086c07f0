import dataclasses

import pytest

from proxy_stream.core.config import (
    DEFAULT_IDLE_TIMEOUT,
    DEFAULT_MAX_CONNECTIONS,
    Profile,
    RelayConfig,
    build_config,
    parse_float,
    parse_int,
)


def test_defaults_follow_web_profile():
    config = build_config()

    assert config.listen_port == 8888
    assert config.destination == ("127.0.0.1", 8080)
    assert config.skip_count == 0
    assert config.idle_timeout == DEFAULT_IDLE_TIMEOUT
    assert config.max_connections == DEFAULT_MAX_CONNECTIONS
    assert config.listen_address == ("0.0.0.0", 8888)


def test_mail_profile_ports():
    config = build_config(profile=Profile.MAIL)

    assert config.listen_port == 30001
    assert config.destination_port == 110


def test_explicit_values_override_profile():
    config = build_config(
        profile=Profile.MAIL,
        listen_port="9000",
        destination_host="10.0.0.5",
        destination_port="8081",
        skip_count="3",
        idle_timeout="2.5",
        max_connections="7",
    )

    assert config == RelayConfig(
        listen_port=9000,
        destination_host="10.0.0.5",
        destination_port=8081,
        skip_count=3,
        idle_timeout=2.5,
        max_connections=7,
    )


def test_unparsable_numbers_fall_back_to_defaults():
    config = build_config(
        listen_port="http",
        destination_port="99999",
        skip_count="-1",
        idle_timeout="soon",
        max_connections="0",
        connect_timeout="nan",
    )

    assert config == build_config()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, 5), ("12", 12), (" 12 ", 12), ("1.5", 5), ("", 5), ("-3", 5), ("70000", 5)],
)
def test_parse_int(raw, expected):
    assert parse_int(raw, 5, "value", maximum=65535) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, 30.0), ("0", 0.0), ("1.25", 1.25), ("-1", 30.0), ("inf", 30.0), ("x", 30.0)],
)
def test_parse_float(raw, expected):
    assert parse_float(raw, 30.0, "timeout") == expected


def test_zero_idle_timeout_disables_timeout():
    assert not RelayConfig(idle_timeout=0).idle_timeout_enabled
    assert RelayConfig(idle_timeout=0.1).idle_timeout_enabled


@pytest.mark.parametrize(
    "overrides",
    [
        {"listen_port": 70000},
        {"destination_port": 0},
        {"destination_host": ""},
        {"skip_count": -1},
        {"idle_timeout": -1},
        {"max_connections": 0},
        {"connect_timeout": 0},
        {"buffer_size": 0},
    ],
)
def test_invalid_config_rejected(overrides):
    with pytest.raises(ValueError):
        RelayConfig(**overrides)


def test_config_is_immutable():
    config = RelayConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.skip_count = 4
