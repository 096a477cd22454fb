"""The refresh cycle: clear, fetch, normalize, estimate, persist, summarize."""
import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import config
import service
import store
import summary
from db import SessionLocal, init_db
from gdp import estimate_gdp, resolve_rate
from normalize import normalize_all
from schema import Base, Country

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshStatus:
    total_countries: int = 0
    last_refreshed_at: Optional[datetime] = None

    def as_dict(self):
        return {
            "total_countries": self.total_countries,
            "last_refreshed_at": self.last_refreshed_at.isoformat() if self.last_refreshed_at else None,
        }


@dataclass(frozen=True)
class RefreshResult:
    message: str
    status: RefreshStatus

    def as_dict(self):
        return {"message": self.message, **self.status.as_dict()}


class StatusTracker:
    """Holds the current RefreshStatus; the snapshot is replaced, never mutated."""

    def __init__(self):
        self._lock = threading.Lock()
        self._status = RefreshStatus()

    def snapshot(self) -> RefreshStatus:
        with self._lock:
            return self._status

    def publish(self, status: RefreshStatus) -> RefreshStatus:
        with self._lock:
            self._status = status
        return status

    def recompute(self, db, refreshed_at=None) -> RefreshStatus:
        """Rebuild the snapshot from the store.

        ``refreshed_at`` overrides the stored latest timestamp, as at the end
        of a refresh cycle.
        """
        total, latest = store.aggregate(db)
        return self.publish(RefreshStatus(total, refreshed_at or latest))

    def recount(self, db) -> RefreshStatus:
        """Refresh the count while keeping the last refresh time."""
        total, _ = store.aggregate(db)
        with self._lock:
            self._status = RefreshStatus(total, self._status.last_refreshed_at)
            return self._status


def build_countries(raw_countries, rates, refreshed_at):
    """Turn raw upstream records into Country rows, first name wins."""
    rows = []
    seen = set()
    for c in normalize_all(raw_countries):
        key = c.name.casefold()
        if key in seen:
            logger.debug("Dropping duplicate country %r", c.name)
            continue
        seen.add(key)
        try:
            rate = resolve_rate(c.currency_code, rates)
            rows.append(
                Country(
                    name=c.name,
                    capital=c.capital,
                    region=c.region,
                    population=c.population,
                    currency_code=c.currency_code,
                    exchange_rate=rate,
                    estimated_gdp=estimate_gdp(c.population, rate),
                    flag_url=c.flag_url,
                    last_refreshed_at=refreshed_at,
                )
            )
        except (ValueError, ArithmeticError) as e:
            logger.warning("Skipping country %r: %s", c.name, e)
    return rows


def render_from_store(db, status, path=None):
    """Draw the summary from every stored country; None when there are none."""
    path = path or config.SUMMARY_IMAGE_PATH
    countries = store.list_countries(db, sort="gdp_desc")
    if not countries:
        return None
    return summary.render_summary(status, countries, path)


def refresh_countries(db, tracker: StatusTracker, image_path=None) -> RefreshResult:
    """Run one refresh cycle.

    Only an unreachable store (``store.StoreUnavailableError``) fails the
    cycle; upstream outages, bad records and drawing errors degrade it.
    """
    image_path = image_path or config.SUMMARY_IMAGE_PATH
    logger.info("Starting countries refresh")

    store.clear_countries(db)

    raw_countries = service.fetch_countries()
    rates = service.fetch_exchange_rates()

    # rows and status share one stamp so a restart reloads the same value
    refreshed_at = datetime.now(timezone.utc)
    rows = build_countries(raw_countries, rates, refreshed_at)
    inserted = store.insert_countries(db, rows)
    logger.info("Inserted %d of %d countries", inserted, len(rows))

    status = tracker.recompute(db, refreshed_at=refreshed_at)

    try:
        summary.discard_summary(image_path)
        render_from_store(db, status, image_path)
    except Exception:
        logger.exception("Failed to generate summary image")

    return RefreshResult("Countries refreshed successfully", status)


def record_deletion(db, tracker: StatusTracker, image_path=None) -> RefreshStatus:
    """Bring the status and cached image in line after a delete."""
    summary.discard_summary(image_path or config.SUMMARY_IMAGE_PATH)
    return tracker.recount(db)


def main():
    """Run one refresh cycle from the command line."""
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    init_db(Base)
    tracker = StatusTracker()
    db = SessionLocal()
    try:
        result = refresh_countries(db, tracker)
    finally:
        db.close()
    print(json.dumps(result.as_dict()))


if __name__ == "__main__":
    main()
