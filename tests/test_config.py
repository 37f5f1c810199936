"""Tests for defaults and logging configuration."""

import logging

import pytest

from triton_cli import config


def test_default_artifact_names():
    assert config.DEFAULT_CLAIM_FILE == "triton.claim"
    assert config.DEFAULT_PROOF_FILE == "triton.proof"


@pytest.mark.parametrize(
    "verbosity, level",
    [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG), (-1, logging.WARNING)],
)
def test_log_level_from_verbosity(monkeypatch, verbosity, level):
    monkeypatch.delenv(config.LOG_LEVEL_ENV, raising=False)
    assert config.log_level(verbosity) == level


@pytest.mark.parametrize("raw, level", [("debug", logging.DEBUG), ("ERROR", logging.ERROR), ("15", 15)])
def test_log_level_from_environment(monkeypatch, raw, level):
    monkeypatch.setenv(config.LOG_LEVEL_ENV, raw)
    assert config.log_level(0) == level


def test_invalid_environment_level_is_ignored(monkeypatch):
    monkeypatch.setenv(config.LOG_LEVEL_ENV, "loud")
    assert config.log_level(1) == logging.INFO


def test_setup_logging_replaces_handlers(monkeypatch):
    monkeypatch.delenv(config.LOG_LEVEL_ENV, raising=False)
    config.setup_logging(0)
    logger = config.setup_logging(2)
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_default_stark_parameters():
    params = config.default_stark_parameters()
    assert params.security_level == 160
    assert params.fri_expansion_factor == 4
