"""Health check API routes."""

from fastapi import APIRouter, Depends, status
from sqlalchemy import text

from aeccheck.catalog import DisciplineCatalog
from aeccheck.db.connection import get_session
from aeccheck.web.dependencies import get_catalog

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("", status_code=status.HTTP_200_OK)
async def health_check(catalog: DisciplineCatalog = Depends(get_catalog)):
    """Report check store connectivity and the loaded catalog."""
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        return {
            "status": "error",
            "database": "disconnected",
            "detail": str(e),
            "disciplines": catalog.ids,
        }

    return {"status": "ok", "database": database, "disciplines": catalog.ids}
