"""Decoders for the country payloads returned by the upstream directory.

restcountries.com has served two incompatible layouts over time:

* v3.1 nests the name (``{"common": ..., "official": ...}``), keeps
  currencies as a ``{code: {...}}`` mapping and capitals as a list;
* v2 uses a flat ``name`` string and a list of ``{"code": ...}`` currencies.

Each layout gets its own pydantic model; ``detect_shape`` picks one by
looking at the structure of the record.
"""
import logging
from typing import Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CAPITAL = "Unknown"
DEFAULT_REGION = "Unknown"
DEFAULT_CURRENCY = "USD"


class Flags(BaseModel):
    model_config = ConfigDict(extra="ignore")

    png: Optional[str] = None
    svg: Optional[str] = None


class V3Name(BaseModel):
    model_config = ConfigDict(extra="ignore")

    common: Optional[str] = None
    official: Optional[str] = None


class V3Currency(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    symbol: Optional[str] = None


class V2Currency(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None


class NormalizedCountry(BaseModel):
    name: str
    capital: str = DEFAULT_CAPITAL
    region: str = DEFAULT_REGION
    population: int = Field(default=0, ge=0)
    currency_code: str = DEFAULT_CURRENCY
    flag_url: str = ""


def _text(value, default):
    if value is None:
        return default
    value = str(value).strip()
    return value or default


def _flag_url(flags, legacy=None):
    # raster, then the legacy v2 field, then vector
    for candidate in (flags.png if flags else None, legacy, flags.svg if flags else None):
        if candidate and candidate.strip():
            return candidate.strip()
    return ""


class RestCountriesV3(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: V3Name = Field(default_factory=V3Name)
    capital: List[str] = Field(default_factory=list)
    region: Optional[str] = None
    population: Optional[int] = Field(default=0, ge=0)
    currencies: Dict[str, Optional[V3Currency]] = Field(default_factory=dict)
    flags: Optional[Flags] = None

    def to_country(self) -> Optional[NormalizedCountry]:
        name = _text(self.name.common, None) or _text(self.name.official, None)
        if not name:
            return None
        code = next(iter(self.currencies), None)
        return NormalizedCountry(
            name=name,
            capital=_text(self.capital[0] if self.capital else None, DEFAULT_CAPITAL),
            region=_text(self.region, DEFAULT_REGION),
            population=self.population or 0,
            currency_code=_text(code, DEFAULT_CURRENCY).upper(),
            flag_url=_flag_url(self.flags),
        )


class RestCountriesV2(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    capital: Optional[str] = None
    region: Optional[str] = None
    population: Optional[int] = Field(default=0, ge=0)
    currencies: List[Optional[V2Currency]] = Field(default_factory=list)
    flag: Optional[str] = None
    flags: Optional[Flags] = None

    def to_country(self) -> Optional[NormalizedCountry]:
        name = _text(self.name, None)
        if not name:
            return None
        first = self.currencies[0] if self.currencies else None
        return NormalizedCountry(
            name=name,
            capital=_text(self.capital, DEFAULT_CAPITAL),
            region=_text(self.region, DEFAULT_REGION),
            population=self.population or 0,
            currency_code=_text(first.code if first else None, DEFAULT_CURRENCY).upper(),
            flag_url=_flag_url(self.flags, self.flag),
        )


SourceRecord = Union[RestCountriesV3, RestCountriesV2]


def detect_shape(raw) -> Type[SourceRecord]:
    """Return the model class matching the layout of ``raw``."""
    if not isinstance(raw, dict):
        raise ValueError(f"expected a JSON object, got {type(raw).__name__}")
    if isinstance(raw.get("name"), dict) or isinstance(raw.get("currencies"), dict):
        return RestCountriesV3
    return RestCountriesV2


def normalize_record(raw) -> Optional[NormalizedCountry]:
    """Decode one upstream record.

    Returns None when the record carries no usable name. Raises
    ``ValueError`` (pydantic's ``ValidationError`` included) when it is
    malformed.
    """
    model = detect_shape(raw)
    return model.model_validate(raw).to_country()


def normalize_all(raws) -> List[NormalizedCountry]:
    countries = []
    for raw in raws:
        try:
            country = normalize_record(raw)
        except (ValidationError, ValueError) as exc:
            logger.warning("Skipping malformed country record: %s", exc)
            continue
        if country is None:
            logger.debug("Skipping country record without a name")
            continue
        countries.append(country)
    return countries
