from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from country_cache.database import get_db
from country_cache.models import STATUS_ROW_ID, Country, RefreshStatus
from country_cache.schemas import StatusResponse

# Initialize the router
router = APIRouter(
    prefix="/status",
    tags=["Status"],
)


@router.get("", response_model=StatusResponse, summary="Get the cache size and last refresh time.")
def read_status(db: Session = Depends(get_db)):
    """
    Reports how many countries are cached and when the last successful refresh
    happened. ``last_refreshed_at`` is null until the first refresh succeeds.
    """
    total = db.query(func.count(Country.id)).scalar() or 0
    status_row = db.get(RefreshStatus, STATUS_ROW_ID)

    return {
        "total_countries": total,
        "last_refreshed_at": status_row.last_refreshed_at if status_row else None,
    }
