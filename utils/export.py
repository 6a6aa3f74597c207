"""
Database export.

Serializes every ShuttleMatch table to MySQL compatible INSERT statements so
the data can be moved off Supabase, or to one CSV file per table.

Used by the admin page, the FastAPI endpoint in api/main.py and as a script:

    python -m utils.export --output backup.sql
    python -m utils.export --format csv --output exports/

The script reads SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY from the
environment (a local .env file is loaded).
"""

import argparse
import json
import logging
import os
from datetime import date, datetime, timezone
from pathlib import Path

import pandas as pd
from dotenv import load_dotenv
from supabase import create_client

from utils.constants import EXPORT_TABLES

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000


def sql_value(value):
    """Render one Python value as a SQL literal.

    Example:
        >>> sql_value(None)
        'NULL'
        >>> sql_value(True)
        '1'
        >>> sql_value("O'Neil")
        "'O''Neil'"
    """
    if value is None:
        return "NULL"
    # bool before int: True is an int in Python
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, dict)):
        return "'" + json.dumps(value).replace("'", "''") + "'"
    text = str(value).replace("\\", "\\\\").replace("'", "''")
    return f"'{text}'"


def insert_statement(table, row):
    columns = ", ".join(f"`{column}`" for column in row)
    values = ", ".join(sql_value(value) for value in row.values())
    return f"INSERT INTO `{table}` ({columns}) VALUES ({values});"


def export_filename(day=None):
    day = day or date.today()
    return f"database_export_{day.isoformat()}.sql"


def fetch_all(client, table):
    """Every row of ``table``, paging past the API's default row limit."""
    rows = []
    start = 0
    while True:
        page = client.table(table).select("*").range(start, start + PAGE_SIZE - 1).execute().data or []
        rows.extend(page)
        if len(page) < PAGE_SIZE:
            return rows
        start += PAGE_SIZE


def export_sql(fetch_table, generated_at=None, tables=EXPORT_TABLES):
    """Build the SQL dump.

    Args:
        fetch_table: Callable ``table -> list[dict]``. An exception for one
            table is written into the dump as a comment and the export moves on.
        generated_at: Timestamp for the header, defaults to now (UTC).

    Returns:
        str: The complete dump.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    lines = [
        "-- Database Export",
        f"-- Generated: {generated_at.isoformat()}",
        "-- MySQL Compatible Format",
        "",
        "SET FOREIGN_KEY_CHECKS=0;",
        "",
    ]
    for table in tables:
        try:
            rows = fetch_table(table)
        except Exception as e:
            logger.error(f"Error exporting {table}: {e}")
            lines.extend([f"-- Error exporting {table}: {e}", ""])
            continue
        if not rows:
            lines.extend([f"-- No data in table: {table}", ""])
            continue
        lines.append(f"-- Table: {table}")
        lines.append(f"-- Records: {len(rows)}")
        lines.extend(insert_statement(table, row) for row in rows)
        lines.append("")
    lines.append("SET FOREIGN_KEY_CHECKS=1;")
    return "\n".join(lines) + "\n"


def export_csv(fetch_table, output_dir, tables=EXPORT_TABLES):
    """Write one CSV per table into ``output_dir`` and return the written paths."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for table in tables:
        df = pd.DataFrame(fetch_table(table))
        if df.empty:
            continue
        # Arrays and JSON columns become JSON text so the CSV round-trips
        for column in df.columns:
            if df[column].map(lambda v: isinstance(v, (list, dict))).any():
                df[column] = df[column].map(lambda v: json.dumps(v) if isinstance(v, (list, dict)) else v)
        path = output_dir / f"{table}.csv"
        df.to_csv(path, index=False)
        written.append(path)
    return written


def create_service_client():
    """Supabase client with the service role key (bypasses RLS)."""
    load_dotenv()
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise RuntimeError("Please set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY as environment variables.")
    return create_client(url, key)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Export the ShuttleMatch database")
    parser.add_argument("--format", choices=["sql", "csv"], default="sql")
    parser.add_argument("--output", help="SQL file or CSV directory (default: dated file / exports/)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    client = create_service_client()

    def fetch(table):
        return fetch_all(client, table)

    if args.format == "csv":
        paths = export_csv(fetch, args.output or "exports")
        logger.info(f"Wrote {len(paths)} CSV files")
    else:
        output = Path(args.output or export_filename())
        output.write_text(export_sql(fetch), encoding="utf-8")
        logger.info(f"Wrote {output}")


if __name__ == "__main__":
    main()
