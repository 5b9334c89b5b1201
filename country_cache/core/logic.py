import asyncio
import logging
import math
import sys
import time
from datetime import datetime, timezone

import httpx
from starlette.concurrency import run_in_threadpool

from country_cache import database
from country_cache.config import Config
from country_cache.core.exceptions import ExternalSourceUnavailable
from country_cache.core.image_generator import generate_summary_image
from country_cache.core.math_utils import random_between, safe_divide
from country_cache.models import STATUS_ROW_ID, Country, RefreshStatus, normalize_name
from country_cache.schemas import RefreshResult

logger = logging.getLogger(__name__)

COUNTRIES_SOURCE = "countries API"
RATES_SOURCE = "exchange rates API"

GDP_MULTIPLIER_MIN = 1000
GDP_MULTIPLIER_MAX = 2000

# Largest population the BigInteger column can hold
MAX_POPULATION = 2**63 - 1

# One sync at a time per process; a second caller waits for the first.
_refresh_lock = asyncio.Lock()


def utc_timestamp():
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_client():
    return httpx.AsyncClient(timeout=Config.external_timeout)


def _is_number(value):
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


# --- Fetching ---


async def _fetch_json(client, url, source):
    try:
        response = await client.get(url)
        response.raise_for_status()
        return response.json()
    except httpx.TimeoutException as e:
        raise ExternalSourceUnavailable(source, "request timeout") from e
    except (httpx.HTTPError, ValueError) as e:
        raise ExternalSourceUnavailable(source, str(e)) from e


async def fetch_countries(client):
    payload = await _fetch_json(client, Config.countries_api_url, COUNTRIES_SOURCE)
    if not isinstance(payload, list):
        raise ExternalSourceUnavailable(COUNTRIES_SOURCE, "expected a list of countries")
    return payload


async def fetch_exchange_rates(client):
    payload = await _fetch_json(client, Config.exchange_rate_api_url, RATES_SOURCE)
    rates = payload.get("rates") if isinstance(payload, dict) else None
    if not isinstance(rates, dict):
        raise ExternalSourceUnavailable(RATES_SOURCE, "missing rates mapping")
    return normalize_rates(rates)


def normalize_rates(rates):
    """Keep only usable (finite, positive) rates keyed by currency code."""
    usable = {}
    for code, rate in rates.items():
        if _is_number(rate) and rate > 0:
            usable[code] = float(rate)
        else:
            logger.debug("Ignoring unusable exchange rate %r for %s", rate, code)
    return usable


async def fetch_external_data(client):
    """Fetch both sources concurrently.

    The first failure wins: the other request is cancelled and the error is
    re-raised with the failing source attached.
    """
    tasks = [
        asyncio.create_task(fetch_countries(client)),
        asyncio.create_task(fetch_exchange_rates(client)),
    ]
    try:
        countries_data, rates = await asyncio.gather(*tasks)
    except ExternalSourceUnavailable as e:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.error("Failed to fetch data from %s: %s", e.source, e.reason)
        raise

    logger.info(
        "Fetched %d countries and %d exchange rates", len(countries_data), len(rates)
    )
    return countries_data, rates


# --- Transform ---


def _first_currency_code(raw):
    currencies = raw.get("currencies")
    if not isinstance(currencies, list) or not currencies:
        return None
    first = currencies[0]
    if not isinstance(first, dict):
        return None
    return first.get("code") or None


def transform_country(raw, rates, refreshed_at):
    """Turn one raw country into a storable record, or None to drop it."""
    if not isinstance(raw, dict):
        return None

    name = raw.get("name")
    population = raw.get("population")
    if not isinstance(name, str) or not name.strip():
        return None
    if not _is_number(population) or not 0 <= population <= MAX_POPULATION:
        return None
    population = int(population)

    currency_code = _first_currency_code(raw)
    if currency_code is None:
        exchange_rate = None
        estimated_gdp = 0
    else:
        exchange_rate = rates.get(currency_code)
        if exchange_rate:
            # Sampled per country on purpose: GDP is only a rough proxy
            multiplier = random_between(GDP_MULTIPLIER_MIN, GDP_MULTIPLIER_MAX)
            estimated_gdp = safe_divide(population * multiplier, exchange_rate)
        else:
            estimated_gdp = None

    return {
        "name": name.strip(),
        "capital": raw.get("capital"),
        "region": raw.get("region"),
        "population": population,
        "currency_code": currency_code,
        "exchange_rate": exchange_rate,
        "estimated_gdp": estimated_gdp,
        "flag_url": raw.get("flag"),
        "last_refreshed_at": refreshed_at,
    }


def transform_countries(countries_data, rates, refreshed_at):
    records = []
    for raw in countries_data:
        record = transform_country(raw, rates, refreshed_at)
        if record is None:
            logger.debug("Skipping country without name or numeric population: %r", raw)
            continue
        records.append(record)
    return records


# --- Persistence ---


def _apply_record(db_session, existing, record):
    if existing is None:
        country = Country(name_key=normalize_name(record["name"]), **record)
        db_session.add(country)
        return country

    for key, value in record.items():
        if key != "name":
            setattr(existing, key, value)
    return existing


def persist_countries(db_session, records, refreshed_at):
    """Upsert every record by normalized name and stamp the status row.

    Must run inside a transaction: the caller commits or rolls back the
    whole batch together with the status update.
    """
    by_key = {c.name_key: c for c in db_session.query(Country).all()}
    inserted = updated = 0

    for record in records:
        key = normalize_name(record["name"])
        existing = by_key.get(key)
        if existing is None:
            inserted += 1
        else:
            updated += 1
        by_key[key] = _apply_record(db_session, existing, record)

    status_row = db_session.get(RefreshStatus, STATUS_ROW_ID)
    if status_row is None:
        db_session.add(RefreshStatus(id=STATUS_ROW_ID, last_refreshed_at=refreshed_at))
    else:
        status_row.last_refreshed_at = refreshed_at

    logger.info("Upserted countries: %d inserted, %d updated", inserted, updated)
    return len(records)


# --- Orchestration ---


async def refresh(client=None):
    """Run one sync: fetch, transform, upsert atomically, then redraw the image."""
    async with _refresh_lock:
        return await _refresh(client)


async def _refresh(client):
    refreshed_at = utc_timestamp()
    logger.info("Starting refresh of country and exchange rate data...")

    if client is None:
        async with build_client() as owned_client:
            countries_data, rates = await fetch_external_data(owned_client)
    else:
        countries_data, rates = await fetch_external_data(client)

    records = transform_countries(countries_data, rates, refreshed_at)
    logger.info("Writing %d countries to database...", len(records))

    count = await run_in_threadpool(
        database.run_in_transaction, persist_countries, records, refreshed_at
    )

    image_generated = True
    try:
        await run_in_threadpool(generate_summary_image, records, refreshed_at)
    except Exception:
        # Data is already committed; the refresh still counts as successful
        logger.warning("Summary image generation failed", exc_info=True)
        image_generated = False

    logger.info("Refresh complete.")
    return RefreshResult(
        message="Countries refreshed successfully",
        count=count,
        last_refreshed_at=refreshed_at,
        image_generated=image_generated,
    )


def refresh_main():
    """Standalone refresh runner: ensure the schema, sync once, log a summary."""
    from country_cache.logging_config import configure_logging
    from country_cache.migrations import apply_schema

    configure_logging()
    start_time = time.time()

    try:
        apply_schema()
        result = asyncio.run(refresh())
    except ExternalSourceUnavailable as e:
        logger.error("Refresh aborted: %s", e)
        sys.exit(1)
    except Exception:
        logger.exception("The refresh failed and changes were rolled back")
        sys.exit(1)
    finally:
        database.close()

    logger.info("-> Countries written: %d", result.count)
    logger.info("-> Last refresh time: %s", result.last_refreshed_at)
    logger.info("-> Summary image generated: %s", result.image_generated)
    logger.info("Total time taken: %.2f seconds.", time.time() - start_time)


if __name__ == "__main__":
    refresh_main()
