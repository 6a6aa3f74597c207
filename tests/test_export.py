"""
Tests for the SQL and CSV database export.
"""

from datetime import date, datetime, timezone

import pandas as pd

from utils.constants import EXPORT_TABLES
from utils.export import PAGE_SIZE, export_csv, export_filename, export_sql, fetch_all, insert_statement, sql_value

GENERATED = datetime(2025, 6, 1, 8, 30, tzinfo=timezone.utc)


def test_sql_value_literals():
    assert sql_value(None) == "NULL"
    assert sql_value(True) == "1"
    assert sql_value(False) == "0"
    assert sql_value(42) == "42"
    assert sql_value(4.5) == "4.5"
    assert sql_value("O'Neil") == "'O''Neil'"
    assert sql_value("C:\\path") == "'C:\\\\path'"
    assert sql_value(["a", "b"]) == "'[\"a\", \"b\"]'"
    assert sql_value({"k": "it's"}) == "'{\"k\": \"it''s\"}'"


def test_insert_statement_quotes_identifiers():
    row = {"id": 1, "court_name": "Royal", "rating": None}
    assert insert_statement("courts", row) == "INSERT INTO `courts` (`id`, `court_name`, `rating`) VALUES (1, 'Royal', NULL);"


def test_export_filename():
    assert export_filename(date(2025, 3, 1)) == "database_export_2025-03-01.sql"


def test_export_sql_layout_and_error_handling():
    data = {"courts": [{"id": 1, "court_name": "Royal"}, {"id": 2, "court_name": "Shwe"}]}

    def fetch(table):
        if table == "orders":
            raise RuntimeError("permission denied")
        return data.get(table, [])

    sql = export_sql(fetch, GENERATED)
    lines = sql.splitlines()

    assert lines[:5] == [
        "-- Database Export",
        "-- Generated: 2025-06-01T08:30:00+00:00",
        "-- MySQL Compatible Format",
        "",
        "SET FOREIGN_KEY_CHECKS=0;",
    ]
    assert lines[-1] == "SET FOREIGN_KEY_CHECKS=1;"
    assert "-- Table: courts" in lines
    assert "-- Records: 2" in lines
    assert "INSERT INTO `courts` (`id`, `court_name`) VALUES (2, 'Shwe');" in lines
    assert "-- Error exporting orders: permission denied" in lines
    assert "-- No data in table: penalty_logs" in lines
    # Tables keep the fixed parent-before-child order
    positions = [sql.index(f" {table}") for table in EXPORT_TABLES]
    assert positions == sorted(positions)


def test_fetch_all_pages_past_default_limit(fake_db):
    fake_db.seed("post_likes", [{"post_id": "p", "user_id": f"u{i}"} for i in range(PAGE_SIZE * 2 + 5)])
    rows = fetch_all(fake_db, "post_likes")
    assert len(rows) == PAGE_SIZE * 2 + 5
    assert len({r["id"] for r in rows}) == len(rows)


def test_export_csv_writes_one_file_per_non_empty_table(tmp_path):
    data = {"courts": [{"id": 1, "court_name": "Royal", "images": ["a.jpg", "b.jpg"]}]}
    written = export_csv(lambda table: data.get(table, []), tmp_path)

    assert [p.name for p in written] == ["courts.csv"]
    df = pd.read_csv(tmp_path / "courts.csv")
    assert df.iloc[0]["court_name"] == "Royal"
    assert df.iloc[0]["images"] == '["a.jpg", "b.jpg"]'
