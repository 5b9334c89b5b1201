from sqlalchemy import BigInteger, Column, Float, Integer, String

from country_cache.database import Base

STATUS_ROW_ID = 1


def normalize_name(name):
    """Key used for case-insensitive name matching."""
    return name.strip().lower()


class Country(Base):
    __tablename__ = "countries"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    name_key = Column(String(255), unique=True, nullable=False, index=True)
    capital = Column(String(255), nullable=True)
    region = Column(String(100), nullable=True, index=True)
    population = Column(BigInteger, nullable=False)
    currency_code = Column(String(10), nullable=True, index=True)
    exchange_rate = Column(Float, nullable=True)
    estimated_gdp = Column(Float, nullable=True)
    flag_url = Column(String(500), nullable=True)
    # ISO-8601 UTC string shared by every row written in one sync run
    last_refreshed_at = Column(String(40), nullable=False)


class RefreshStatus(Base):
    __tablename__ = "refresh_status"

    id = Column(Integer, primary_key=True)
    last_refreshed_at = Column(String(40), nullable=True)
