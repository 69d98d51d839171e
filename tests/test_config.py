"""Tests for configuration loading and validation."""

import json
import logging

import pytest

from starknet_stealth.utils.config import StealthConfig
from starknet_stealth.utils.constants import DEFAULT_MAX_PAGES
from starknet_stealth.utils.log import configure_logging


def valid_config(**overrides) -> StealthConfig:
    values = {
        "registry_address": "0x123",
        "factory_address": "0x2",
        "account_class_hash": "0x1234",
    }
    values.update(overrides)
    return StealthConfig(**values)


class TestValidation:
    def test_valid(self):
        assert valid_config().validate() == []

    def test_defaults_incomplete(self):
        errors = StealthConfig().validate()
        assert len(errors) == 3
        assert all("cannot be empty" in e for e in errors)

    def test_bad_hex(self):
        errors = valid_config(factory_address="factory").validate()
        assert any("factory_address" in e for e in errors)

    def test_bad_url(self):
        assert valid_config(rpc_url="ftp://node").validate()

    def test_bad_limits(self):
        errors = valid_config(max_pages=0, chunk_size=0, request_timeout=0).validate()
        assert len(errors) == 3


class TestEnvironment:
    def test_from_env(self):
        config = StealthConfig.from_env(
            {
                "STEALTH_REGISTRY_ADDRESS": "0xabc",
                "STEALTH_MAX_PAGES": "12",
                "STEALTH_REQUEST_TIMEOUT": "2.5",
                "UNRELATED": "x",
            }
        )
        assert config.registry_address == "0xabc"
        assert config.max_pages == 12
        assert config.request_timeout == 2.5

    def test_from_env_defaults(self):
        assert StealthConfig.from_env({}).max_pages == DEFAULT_MAX_PAGES


class TestPersistence:
    def test_save_load(self, tmp_path):
        path = str(tmp_path / "config.json")
        config = valid_config(chunk_size=50)
        config.save(path)
        assert StealthConfig.load(path) == config

    def test_unknown_keys_ignored(self, tmp_path, caplog):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"registry_address": "0x1", "legacy_option": True}))
        with caplog.at_level(logging.WARNING, logger="starknet_stealth"):
            # configure_logging stops propagation, so re-enable it for caplog
            logging.getLogger("starknet_stealth").propagate = True
            config = StealthConfig.load(str(path))
        assert config.registry_address == "0x1"
        assert "legacy_option" in caplog.text


class TestLogging:
    def test_configure_logging(self):
        configure_logging("DEBUG")
        logger = logging.getLogger("starknet_stealth")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        configure_logging("WARNING")
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
        logger.propagate = True
