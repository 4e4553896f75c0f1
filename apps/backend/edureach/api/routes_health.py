from fastapi import APIRouter, Depends
from datetime import datetime, timezone
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..models.db import get_db

router = APIRouter(prefix="/health", tags=["health"])

@router.get("")
def health_root(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok", "db": "ok", "ts": datetime.now(timezone.utc).isoformat()}
