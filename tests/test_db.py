from agentdiscoveries.db import adapt_sql, with_returning_id


def test_adapt_sql_uses_pyformat_placeholders():
    assert adapt_sql("SELECT * FROM agents WHERE id = ? AND call_sign = ?;") == (
        "SELECT * FROM agents WHERE id = %s AND call_sign = %s"
    )


def test_plain_insert_gets_returning_id():
    sql, returning = with_returning_id("INSERT INTO regions (name) VALUES (%s)")
    assert returning is True
    assert sql == "INSERT INTO regions (name) VALUES (%s) RETURNING id"


def test_other_statements_are_left_alone():
    for statement in (
        "UPDATE regions SET name = %s WHERE id = %s",
        "INSERT INTO regions (name) VALUES (%s) RETURNING id",
        "INSERT INTO regions (name) VALUES (%s) ON CONFLICT DO NOTHING",
    ):
        assert with_returning_id(statement) == (statement, False)
