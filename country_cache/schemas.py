from typing import Optional

from pydantic import BaseModel, Field, field_validator

SORT_OPTIONS = ("gdp_desc", "gdp_asc")


class CountryBase(BaseModel):
    name: str = Field(..., example="Nigeria")
    population: int = Field(..., example=206139589)
    currency_code: Optional[str] = Field(None, example="NGN")


class CountryResponse(CountryBase):
    id: int
    capital: Optional[str] = Field(None, example="Abuja")
    region: Optional[str] = Field(None, example="Africa")
    exchange_rate: Optional[float] = Field(None, example=1600.23)
    estimated_gdp: Optional[float] = Field(None, example=25767448125.2)
    flag_url: Optional[str] = None
    last_refreshed_at: str = Field(..., example="2025-10-27T10:00:00.000Z")

    class Config:
        from_attributes = True


class StatusResponse(BaseModel):
    total_countries: int
    last_refreshed_at: Optional[str] = None


class RefreshResult(BaseModel):
    message: str
    count: int
    last_refreshed_at: str
    image_generated: bool = True


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[dict] = None


class CountryQuery(BaseModel):
    """Filters, ordering and pagination accepted by GET /countries."""

    region: Optional[str] = Field(None, min_length=1)
    currency: Optional[str] = Field(None, min_length=1)
    sort: Optional[str] = None
    limit: int = Field(250, ge=1, le=500)
    offset: int = Field(0, ge=0, le=1_000_000_000)

    @field_validator("region", "currency", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("sort")
    @classmethod
    def ignore_unknown_sort(cls, value):
        # Unknown orderings are not an error, the listing is just unordered
        if value not in SORT_OPTIONS:
            return None
        return value
