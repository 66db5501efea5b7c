import pytest

from common.config.env import get_env_bool, get_env_int, get_env_list, get_env_str, parse_bool


@pytest.mark.parametrize("value", ["true", "TRUE", " True ", "1", "yes", "YES", "on", "On"])
def test_parse_bool_truthy(value):
    assert parse_bool(value) is True


@pytest.mark.parametrize("value", ["false", "0", "no", "off", "", "maybe", "tru", "2"])
def test_parse_bool_everything_else_is_false(value):
    assert parse_bool(value) is False


def test_parse_bool_passthrough_and_default():
    assert parse_bool(True) is True
    assert parse_bool(False) is False
    assert parse_bool(1) is True
    assert parse_bool(0) is False
    assert parse_bool(None) is False
    assert parse_bool(None, default=True) is True


def test_get_env_bool(monkeypatch):
    monkeypatch.setenv("ALLOW_INSERT_OPERATION", "yes")
    monkeypatch.setenv("ALLOW_UPDATE_OPERATION", "nope")

    assert get_env_bool("ALLOW_INSERT_OPERATION", False) is True
    assert get_env_bool("ALLOW_UPDATE_OPERATION", True) is False
    assert get_env_bool("ALLOW_DELETE_OPERATION", True) is True


def test_get_env_int(monkeypatch):
    monkeypatch.setenv("MAX_RESULTS", "250")
    monkeypatch.setenv("QUERY_TIMEOUT", " ")
    monkeypatch.setenv("CONNECTION_POOL_SIZE", "five")

    assert get_env_int("MAX_RESULTS", 1000) == 250
    assert get_env_int("QUERY_TIMEOUT", 30) == 30
    with pytest.raises(ValueError, match="CONNECTION_POOL_SIZE"):
        get_env_int("CONNECTION_POOL_SIZE", 5)


def test_get_env_str_required(monkeypatch):
    monkeypatch.delenv("MYSQL_HOST", raising=False)

    assert get_env_str("MYSQL_HOST", "localhost") == "localhost"
    with pytest.raises(KeyError):
        get_env_str("MYSQL_HOST", required=True)


def test_get_env_list(monkeypatch):
    monkeypatch.setenv("ALLOWED_SCHEMAS", " shop, analytics ,,")

    assert get_env_list("ALLOWED_SCHEMAS") == ["shop", "analytics"]
