import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db_session


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/", response_class=PlainTextResponse)
def hello():
    return "Hello World"


@router.get("/db")
def db_health(db: Session = Depends(get_db_session)):
    try:
        rows = [dict(row) for row in db.execute(text("SELECT 1 AS db_alive")).mappings()]
    except SQLAlchemyError as exc:
        logger.error(f"Database health check failed: {exc}")
        return JSONResponse(status_code=503, content={"ok": False, "detail": "Database unavailable"})
    return {"ok": True, "rows": rows}
