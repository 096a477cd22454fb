import logging
from datetime import timezone

from sqlalchemy import func
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from schema import Country

logger = logging.getLogger(__name__)

SORT_ORDERS = {
    "gdp_desc": Country.estimated_gdp.desc(),
    "gdp_asc": Country.estimated_gdp.asc(),
    "name_asc": Country.name.asc(),
    "name_desc": Country.name.desc(),
}
DEFAULT_SORT = "name_asc"


class StoreUnavailableError(Exception):
    """The record store could not be reached or refused a write."""


def _by_name(db: Session, name: str):
    return db.query(Country).filter(func.lower(Country.name) == name.lower())


def clear_countries(db: Session) -> int:
    try:
        deleted = db.query(Country).delete()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailableError("Could not clear the country store") from e
    logger.info("Cleared %d countries", deleted)
    return deleted


def insert_countries(db: Session, countries) -> int:
    """Insert rows, continuing past rows the store rejects.

    Returns how many rows made it in. A lost connection is fatal; a bad row
    is not.
    """
    if not countries:
        return 0
    try:
        db.add_all(countries)
        db.commit()
        return len(countries)
    except OperationalError as e:
        db.rollback()
        raise StoreUnavailableError("Could not write to the country store") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Bulk insert failed (%s), retrying row by row", e)

    inserted = 0
    for country in countries:
        try:
            db.add(country)
            db.commit()
            inserted += 1
        except OperationalError as e:
            db.rollback()
            raise StoreUnavailableError("Could not write to the country store") from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Skipping country %r: %s", country.name, e)
    return inserted


def list_countries(db: Session, region=None, currency=None, sort=None):
    q = db.query(Country)
    if region:
        q = q.filter(func.lower(Country.region).contains(region.lower(), autoescape=True))
    if currency:
        q = q.filter(Country.currency_code == currency.strip().upper())
    return q.order_by(SORT_ORDERS[sort or DEFAULT_SORT], Country.id).all()


def find_country(db: Session, name: str):
    return _by_name(db, name).first()


def delete_country(db: Session, name: str):
    """Delete a country by case-insensitive name; returns the stored name or None."""
    c = find_country(db, name)
    if c is None:
        return None
    deleted_name = c.name
    db.delete(c)
    db.commit()
    logger.info("Deleted country %r", deleted_name)
    return deleted_name


def aggregate(db: Session):
    """Return (count, latest last_refreshed_at) in a single query."""
    total, latest = db.query(func.count(Country.id), func.max(Country.last_refreshed_at)).one()
    if latest is not None and latest.tzinfo is None:
        # SQLite hands back naive datetimes; everything is written in UTC
        latest = latest.replace(tzinfo=timezone.utc)
    return total or 0, latest
