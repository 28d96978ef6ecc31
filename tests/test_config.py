import logging

import pytest

import restify
from restify import RESTIFY, get_config, is_debug
from restify.config import get_int_config
from restify.restify_init import parse_loglevel


@pytest.fixture
def loglevel():
    level = restify.log.level
    yield
    restify.log.setLevel(level)


def test_get_config(app, monkeypatch) -> None:
    assert get_config("DEFAULT_PER_PAGE") == 15
    with app.app_context():
        app.config["DEFAULT_PER_PAGE"] = 20
        assert get_config("DEFAULT_PER_PAGE") == 20
        assert get_config("UNKNOWN_OPTION") is None
        monkeypatch.setenv("UNKNOWN_OPTION", "env")
        assert get_config("UNKNOWN_OPTION") == "env"
        app.config["MAX_PER_PAGE"] = "many"
        assert get_int_config("MAX_PER_PAGE", 1000) == 1000
    assert not hasattr(RESTIFY, "PREFIX")


def test_parse_loglevel() -> None:
    assert parse_loglevel(logging.INFO) == logging.INFO
    assert parse_loglevel("10") == logging.DEBUG
    assert parse_loglevel("warning") == logging.WARNING
    with pytest.raises(ValueError):
        parse_loglevel("loud")


def test_loglevel_is_applied(make_app, monkeypatch, loglevel) -> None:
    make_app(LOGLEVEL="error")
    assert restify.log.level == logging.ERROR
    assert not is_debug()

    monkeypatch.setenv("LOGLEVEL", "10")
    make_app()
    assert restify.log.level == logging.DEBUG
    assert is_debug()

    # the app config wins over the environment
    make_app(LOGLEVEL=logging.INFO)
    assert restify.log.level == logging.INFO


def test_debug_app_logs_debug(make_app, loglevel) -> None:
    make_app(DEBUG=True, LOGLEVEL="error")
    assert restify.log.level == logging.DEBUG
