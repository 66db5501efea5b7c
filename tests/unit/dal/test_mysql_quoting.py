import pytest

pytest.importorskip("aiomysql")

from dal.mysql.quoting import quote_identifier  # noqa: E402


def test_quote_identifier_wraps_in_backticks():
    assert quote_identifier("users") == "`users`"


def test_quote_identifier_doubles_embedded_backticks():
    assert quote_identifier("a`b") == "`a``b`"


@pytest.mark.parametrize("name", ["", "   ", None])
def test_quote_identifier_rejects_empty(name):
    with pytest.raises(ValueError):
        quote_identifier(name)
