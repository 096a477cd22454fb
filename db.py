import logging
from urllib.parse import urlsplit, parse_qs, urlunsplit

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import SQLAlchemyError

import config

logger = logging.getLogger(__name__)

DATABASE_URL = config.DATABASE_URL

# Prefer the pure-Python pymysql driver for the generic mysql:// scheme,
# otherwise SQLAlchemy tries to import MySQLdb.
if DATABASE_URL.startswith("mysql://"):
    DATABASE_URL = DATABASE_URL.replace("mysql://", "mysql+pymysql://", 1)

# Hosted MySQL URLs often carry `ssl-mode=REQUIRED`, which is not a valid
# DBAPI keyword. Strip the query string and translate what we understand.
connect_args = {}
parts = urlsplit(DATABASE_URL)
if parts.query and not DATABASE_URL.startswith("sqlite"):
    qs = parse_qs(parts.query)
    if qs.get("ssl-mode") or qs.get("ssl_mode"):
        # empty dict asks pymysql for TLS without a pinned CA
        connect_args["ssl"] = {}
    DATABASE_URL = urlunsplit((parts.scheme, parts.netloc, parts.path, "", parts.fragment))

if DATABASE_URL.startswith("sqlite"):
    # sessions are handed across threads by the FastAPI threadpool
    connect_args["check_same_thread"] = False

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(Base):
    """Create tables. Call with schema.Base."""
    Base.metadata.create_all(bind=engine)


def ping():
    """Return True when the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.warning("Database ping failed: %s", exc)
        return False
