# FILE: faqbot/debug/router.py
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from faqbot.db import get_db

router = APIRouter(prefix="/debug", tags=["debug"])
logger = logging.getLogger(__name__)


@router.get("/pgvector")
def pgvector(db: Session = Depends(get_db)):
    """Is the pgvector extension installed in the configured database?"""
    if db.get_bind().dialect.name != "postgresql":
        return {"success": True, "pgvectorEnabled": False, "result": []}

    try:
        rows = db.execute(text("SELECT extname FROM pg_extension WHERE extname = 'vector'")).mappings().all()
    except SQLAlchemyError as e:
        logger.error("[debug] pg_extension query failed: %s", e)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    result = [dict(r) for r in rows]
    return {"success": True, "pgvectorEnabled": len(result) > 0, "result": result}
