"""Unit tests for environment-driven settings."""

import logging

import pytest

from keyweave.core.config import Settings, load_settings


def test_defaults_with_empty_environment():
    assert load_settings({}) == Settings()


def test_reads_process_environment(monkeypatch):
    monkeypatch.setenv("KEYWEAVE_CACHE_CAPACITY", "16")
    assert load_settings().cache_capacity == 16


def test_all_overrides():
    settings = load_settings(
        {
            "KEYWEAVE_KDF_VERSION": "v1",
            "KEYWEAVE_CACHE_ENABLED": "off",
            "KEYWEAVE_CACHE_CAPACITY": "10",
            "KEYWEAVE_CACHE_TTL_SECONDS": "2.5",
            "KEYWEAVE_LOG_LEVEL": "debug",
        }
    )
    assert settings == Settings(
        kdf_version="v1",
        cache_enabled=False,
        cache_capacity=10,
        cache_ttl_seconds=2.5,
        log_level=logging.DEBUG,
    )


@pytest.mark.parametrize("raw,expected", [("1", True), ("YES", True), (" true ", True), ("0", False), ("No", False)])
def test_boolean_spellings(raw, expected):
    assert load_settings({"KEYWEAVE_CACHE_ENABLED": raw}).cache_enabled is expected


@pytest.mark.parametrize(
    "name,raw",
    [
        ("KEYWEAVE_CACHE_ENABLED", "maybe"),
        ("KEYWEAVE_CACHE_CAPACITY", "lots"),
        ("KEYWEAVE_CACHE_CAPACITY", "-1"),
        ("KEYWEAVE_CACHE_TTL_SECONDS", "-0.5"),
        ("KEYWEAVE_LOG_LEVEL", "chatty"),
        ("KEYWEAVE_KDF_VERSION", "v9"),
        ("KEYWEAVE_KDF_VERSION", ""),
    ],
)
def test_invalid_values_name_the_variable(name, raw):
    with pytest.raises(ValueError, match=name):
        load_settings({name: raw})


def test_settings_are_immutable():
    with pytest.raises(AttributeError):
        Settings().cache_capacity = 1
