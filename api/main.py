"""
FastAPI endpoints for ShuttleMatch
Database export for backups, hosted next to the Streamlit app
"""
import hmac
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from utils.export import create_service_client, export_filename, export_sql, fetch_all

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="ShuttleMatch API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


def _check_token(authorization: Optional[str]):
    expected = os.environ.get("EXPORT_TOKEN")
    if not expected:
        raise HTTPException(status_code=500, detail="EXPORT_TOKEN is not configured")
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token.strip(), expected):
        raise HTTPException(status_code=401, detail="Invalid or missing token")


@app.get("/")
async def root():
    return {"message": "ShuttleMatch API", "version": "1.0.0"}


@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.get("/export-database")
def export_database(authorization: Optional[str] = Header(None)):
    """
    Dump every table as MySQL compatible INSERT statements
    Access via: curl -H "Authorization: Bearer $EXPORT_TOKEN" https://your-host/export-database
    """
    _check_token(authorization)
    try:
        client = create_service_client()
        now = datetime.now(timezone.utc)
        sql = export_sql(lambda table: fetch_all(client, table), now)
    except Exception as e:
        logger.error(f"Export failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    logger.info("Database export completed")
    return Response(
        content=sql,
        media_type="application/sql",
        headers={"Content-Disposition": f"attachment; filename={export_filename(now.date())}"},
    )
