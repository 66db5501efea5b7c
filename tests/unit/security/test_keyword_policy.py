import pytest

from security.keywords import DANGEROUS_KEYWORDS, KeywordPolicy, contains_keyword, find_keyword


@pytest.mark.parametrize(
    "query, keyword, expected",
    [
        ("DROP TABLE t", "DROP", True),
        ("drop table t", "DROP", True),
        ("SELECT dropdown FROM t", "DROP", False),
        ("SELECT created_at FROM t", "CREATE", False),
        ("SELECT x FROM t; CREATE TABLE y (id int)", "CREATE", True),
        ("SELECT * INTO   OUTFILE '/x'", "INTO OUTFILE", False),
        ("select * into outfile '/x'", "INTO OUTFILE", True),
        ("", "DROP", False),
    ],
)
def test_contains_keyword(query, keyword, expected):
    assert contains_keyword(query, keyword) is expected


def test_find_keyword_returns_first_in_table_order():
    assert find_keyword("REVOKE x; GRANT y", ["GRANT", "REVOKE"]) == "GRANT"
    assert find_keyword("SELECT 1", ["GRANT", "REVOKE"]) is None


def test_with_extras_appends_normalized_unique_keywords():
    policy = KeywordPolicy.with_extras(["copy", " VACUUM ", "GRANT", ""])

    assert policy.dangerous_keywords[: len(DANGEROUS_KEYWORDS)] == DANGEROUS_KEYWORDS
    assert policy.dangerous_keywords[len(DANGEROUS_KEYWORDS) :] == ("COPY", "VACUUM")


def test_find_ddl_and_dangerous():
    policy = KeywordPolicy()

    assert policy.find_ddl("ALTER TABLE t ADD c INT") == "ALTER"
    assert policy.find_ddl("SELECT alter_ego FROM t") is None
    assert policy.find_dangerous("SHUTDOWN") == "SHUTDOWN"
    assert policy.find_dangerous("SELECT 1") is None
