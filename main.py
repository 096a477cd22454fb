import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Literal, Optional

from fastapi import FastAPI, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, FileResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import config
import store
from db import SessionLocal, init_db, ping
from refresh import StatusTracker, record_deletion, refresh_countries, render_from_store
from schema import Base
from store import StoreUnavailableError

logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # create tables if missing, then seed the status from whatever is stored
    init_db(Base)
    db = SessionLocal()
    try:
        status = app.state.status.recompute(db)
        logger.info("Loaded status: %d countries, last refresh %s", status.total_countries, status.last_refreshed_at)
    except SQLAlchemyError:
        logger.exception("Could not load status from the database")
    finally:
        db.close()
    yield


app = FastAPI(title="Country Cache API", lifespan=lifespan)
app.state.status = StatusTracker()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Build a simple field -> message map from validation errors
    details = {}
    for err in exc.errors():
        loc = err.get("loc", [])
        field = loc[-1] if loc else "body"
        details[str(field)] = err.get("msg")
    return JSONResponse(status_code=400, content={"error": "Validation failed", "details": details})


@app.exception_handler(StoreUnavailableError)
async def store_exception_handler(request: Request, exc: StoreUnavailableError):
    logger.error("Store unavailable during %s %s: %s", request.method, request.url.path, exc.__cause__ or exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(exc)})


@app.exception_handler(Exception)
async def internal_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(exc)})


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_status(request: Request) -> StatusTracker:
    return request.app.state.status


class CountryOut(BaseModel):
    id: int
    name: str
    capital: str
    region: str
    population: int
    currency_code: str
    exchange_rate: float
    estimated_gdp: float
    flag_url: str
    last_refreshed_at: datetime

    class Config:
        from_attributes = True


@app.post("/countries/refresh")
def refresh(db: Session = Depends(get_db), tracker: StatusTracker = Depends(get_status)):
    result = refresh_countries(db, tracker, config.SUMMARY_IMAGE_PATH)
    return result.as_dict()


@app.get("/countries", response_model=List[CountryOut])
def list_countries(
    region: Optional[str] = Query(None),
    currency: Optional[str] = Query(None),
    sort: Literal["gdp_desc", "gdp_asc", "name_asc", "name_desc"] = Query(store.DEFAULT_SORT),
    db: Session = Depends(get_db),
):
    return store.list_countries(db, region=region, currency=currency, sort=sort)


# must be registered before /countries/{name}
@app.get("/countries/image")
def get_image(db: Session = Depends(get_db), tracker: StatusTracker = Depends(get_status)):
    path = config.SUMMARY_IMAGE_PATH
    if not path.exists():
        try:
            rendered = render_from_store(db, tracker.snapshot(), path)
        except Exception:
            logger.exception("Could not generate summary image on demand")
            return JSONResponse(status_code=404, content={"error": "Summary image not found and could not be generated"})
        if rendered is None:
            return JSONResponse(status_code=404, content={"error": "No countries data available to generate image"})
    return FileResponse(str(path), media_type="image/png")


@app.get("/countries/{name}", response_model=CountryOut)
def get_country(name: str, db: Session = Depends(get_db)):
    c = store.find_country(db, name)
    if not c:
        return JSONResponse(status_code=404, content={"error": "Country not found"})
    return c


@app.delete("/countries/{name}")
def delete_country(name: str, db: Session = Depends(get_db), tracker: StatusTracker = Depends(get_status)):
    deleted = store.delete_country(db, name)
    if deleted is None:
        return JSONResponse(status_code=404, content={"error": "Country not found"})
    record_deletion(db, tracker, config.SUMMARY_IMAGE_PATH)
    return {"message": "Country deleted successfully", "deleted_country": deleted}


@app.get("/status")
def status(tracker: StatusTracker = Depends(get_status)):
    return tracker.snapshot().as_dict()


@app.get("/health")
def health():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "Connected" if ping() else "Disconnected",
    }
