import os

from dotenv import load_dotenv

load_dotenv()


def _database_url():
    url = os.getenv("DATABASE_URL", "sqlite:///./data/countries.db")
    # Handle Railway/Heroku PostgreSQL URL format
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


class Config:
    database_url = _database_url()
    countries_api_url = os.getenv(
        "COUNTRIES_API_URL",
        "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies",
    )
    exchange_rate_api_url = os.getenv(
        "EXCHANGE_RATE_API_URL", "https://open.er-api.com/v6/latest/USD"
    )
    external_timeout = float(os.getenv("EXTERNAL_TIMEOUT", "15"))
    cache_dir = os.getenv("CACHE_DIR", "cache")
    log_level = os.getenv("LOG_LEVEL", "INFO")
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
