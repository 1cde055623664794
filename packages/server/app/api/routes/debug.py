"""
Diagnostics endpoints, mounted only when debug endpoints are enabled.

GET  /debug/dbinfo - Configured vs effective connection and data file status
POST /debug/seed   - Ensure the schema exists and report connectivity
"""

from __future__ import annotations

import os

from fastapi import APIRouter
from sqlalchemy.engine import make_url

from app.core.config import get_settings
from app.core.database import check_connection, engine, init_db, sqlite_data_source

router = APIRouter(tags=["Debug"])


@router.get("/dbinfo")
async def db_info():
    settings = get_settings()
    effective = engine.url.render_as_string(hide_password=True)
    data_source = sqlite_data_source(effective) or ""
    directory = os.path.dirname(os.path.abspath(data_source)) if data_source else ""
    return {
        "fromConfig": make_url(settings.database_url).render_as_string(hide_password=True),
        "effective": effective,
        "dataSource": data_source,
        "dirExists": os.path.isdir(directory) if directory else None,
        "fileExists": os.path.isfile(data_source) if data_source else None,
    }


@router.post("/seed")
async def seed():
    await init_db()
    return {"migrated": True, "canConnect": await check_connection()}
