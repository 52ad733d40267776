import pytest

from mysql_source.pagination import PageWindow, Paginator, resolve_base_query


def test_resolve_base_query_prefers_custom_query():
    assert resolve_base_query("orders", "SELECT id FROM orders ORDER BY id") == (
        "SELECT id FROM orders ORDER BY id"
    )
    assert resolve_base_query("orders", None) == "SELECT * FROM orders"


def test_resolve_base_query_requires_something():
    with pytest.raises(ValueError):
        resolve_base_query(None, None)


def test_window_advances_by_row_count():
    paginator = Paginator("SELECT * FROM orders", batch_size=2)
    assert paginator.window() == PageWindow(offset=0, limit=2)
    assert paginator.statement() == "SELECT * FROM orders LIMIT 2 OFFSET 0"

    paginator.advance(2)
    assert paginator.statement() == "SELECT * FROM orders LIMIT 2 OFFSET 2"

    paginator.advance(1)
    assert paginator.offset == 3


def test_zero_rows_restart_the_scan():
    paginator = Paginator("SELECT * FROM orders", batch_size=10)
    paginator.advance(10)
    paginator.advance(4)
    assert paginator.offset == 14

    paginator.advance(0)
    assert paginator.offset == 0
    assert paginator.window().offset == 0


def test_custom_query_text_is_left_untouched():
    query = "SELECT * FROM events WHERE label LIKE 'a%' AND at > '10:30'"
    paginator = Paginator(query, batch_size=5)
    assert paginator.statement() == f"{query} LIMIT 5 OFFSET 0"


def test_invalid_arguments():
    with pytest.raises(ValueError):
        Paginator("SELECT 1", batch_size=0)
    paginator = Paginator("SELECT 1", batch_size=1)
    with pytest.raises(ValueError):
        paginator.advance(-1)
