from typing import Annotated, List

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse
from sqlalchemy import func
from sqlalchemy.orm import Session

from country_cache.api.deps import valid_name
from country_cache.api.errors import error_response
from country_cache.core import logic
from country_cache.core.image_generator import get_summary_image_path
from country_cache.database import get_db
from country_cache.models import Country, normalize_name
from country_cache.schemas import (
    CountryQuery,
    CountryResponse,
    ErrorResponse,
    MessageResponse,
    RefreshResult,
)

# Initialize the router
router = APIRouter(
    prefix="/countries",
    tags=["Countries"],
)


@router.post(
    "/refresh",
    response_model=RefreshResult,
    responses={503: {"model": ErrorResponse}},
    summary="Fetch all countries and exchange rates, then cache them.",
)
async def refresh_countries():
    """
    Fetches both external sources concurrently and upserts every country in a
    single transaction. A failing source yields 503 and leaves the cache as is.
    """
    return await logic.refresh()


@router.get(
    "/image",
    responses={200: {"content": {"image/png": {}}}, 404: {"model": ErrorResponse}},
    summary="Serve the summary image generated by the last refresh.",
)
def read_summary_image():
    image_path = get_summary_image_path()
    if image_path is None:
        return error_response(404, "Summary image not found")
    return FileResponse(image_path, media_type="image/png")


@router.get(
    "",
    response_model=List[CountryResponse],
    summary="Retrieve a list of countries with filtering, sorting and pagination.",
)
def read_countries(
    params: Annotated[CountryQuery, Query()],
    db: Session = Depends(get_db),
):
    """
    Filters by region and currency code (case-insensitive equality), orders by
    estimated GDP when asked (countries without a GDP always come last) and
    pages with limit/offset.
    """
    query = db.query(Country)

    if params.region:
        query = query.filter(func.lower(Country.region) == params.region.lower())
    if params.currency:
        query = query.filter(func.lower(Country.currency_code) == params.currency.lower())

    if params.sort == "gdp_desc":
        query = query.order_by(Country.estimated_gdp.is_(None), Country.estimated_gdp.desc())
    elif params.sort == "gdp_asc":
        query = query.order_by(Country.estimated_gdp.is_(None), Country.estimated_gdp.asc())

    return query.order_by(Country.id).offset(params.offset).limit(params.limit).all()


@router.get(
    "/{name}",
    response_model=CountryResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Retrieve data for a specific country by name.",
)
def read_country_by_name(name: str = Depends(valid_name), db: Session = Depends(get_db)):
    country = db.query(Country).filter(Country.name_key == normalize_name(name)).first()

    if country is None:
        return error_response(404, "Country not found")

    return country


@router.delete(
    "/{name}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a cached country by name.",
)
def delete_country(name: str = Depends(valid_name), db: Session = Depends(get_db)):
    deleted = (
        db.query(Country)
        .filter(Country.name_key == normalize_name(name))
        .delete(synchronize_session=False)
    )

    if not deleted:
        db.rollback()
        return error_response(404, "Country not found")

    db.commit()
    return {"message": f"{name} deleted successfully"}
