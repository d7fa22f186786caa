from __future__ import annotations

import datetime as dt
import logging
import os
from typing import List, Literal, Optional, Tuple, Any, Dict

import pytz
from dateutil import parser as dtparse
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from cityinfo.cities import CitiesClient
from cityinfo.errors import SchemaMismatch
from cityinfo.recipes import RecipeStore

logger = logging.getLogger(__name__)

# Calendar zone for "today"; the provider covers French cities, so not the host zone
LOCAL_TIMEZONE = os.environ.get("CITYINFO_TIMEZONE", "Europe/Paris")
MAX_PREDICTIONS = 2

# ---------- Upstream payloads ----------
class UpstreamCoordinate(BaseModel):
    model_config = ConfigDict(extra="ignore")
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

class UpstreamKnownFor(BaseModel):
    model_config = ConfigDict(extra="ignore")
    content: str

class UpstreamInsights(BaseModel):
    model_config = ConfigDict(extra="ignore")
    coordinates: List[UpstreamCoordinate] = Field(..., min_length=1)
    population: int = Field(..., ge=0)
    knownFor: List[UpstreamKnownFor] = []

class UpstreamPrediction(BaseModel):
    model_config = ConfigDict(extra="ignore")
    date: str
    minTemperature: float
    maxTemperature: float

# ---------- Response ----------
class WeatherPrediction(BaseModel):
    model_config = ConfigDict(extra="forbid")
    when: Literal["today", "tomorrow"]
    min: float
    max: float

class RecipeOut(BaseModel):
    model_config = ConfigDict(extra="forbid")
    id: int
    content: str

class CityInfoResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")
    coordinates: Tuple[float, float]
    population: int
    knownFor: List[str]
    weatherPredictions: List[WeatherPrediction]
    recipes: List[RecipeOut]


def local_tz() -> dt.tzinfo:
    try:
        return pytz.timezone(LOCAL_TIMEZONE)
    except Exception:
        logger.warning("Unknown time zone, using UTC", extra={"timezone": LOCAL_TIMEZONE})
        return pytz.UTC

def local_today() -> dt.date:
    return dt.datetime.now(local_tz()).date()

def _forecast_date(raw: str) -> dt.date:
    # "2026-10-19" or "2026-10-19T06:00:00Z"; aware timestamps are read in local time
    parsed = dtparse.isoparse(raw)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(local_tz())
    return parsed.date()

def tag_predictions(predictions: List[Dict[str, Any]], today: dt.date) -> List[WeatherPrediction]:
    """Keep the first two upstream predictions and label them.

    Only the first entry dated `today` gets the `today` label, everything
    else is `tomorrow`. Upstream order is preserved.
    """
    out: List[WeatherPrediction] = []
    seen_today = False
    for raw in predictions[:MAX_PREDICTIONS]:
        try:
            p = UpstreamPrediction.model_validate(raw)
            is_today = _forecast_date(p.date) == today
        except (PydanticValidationError, ValueError, OverflowError) as e:
            raise SchemaMismatch(detail=f"bad weather prediction {raw!r}: {e}")
        when = "tomorrow"
        if is_today and not seen_today:
            when, seen_today = "today", True
        out.append(WeatherPrediction(when=when, min=p.minTemperature, max=p.maxTemperature))
    return out

def normalize_insights(payload: Dict[str, Any]) -> UpstreamInsights:
    try:
        return UpstreamInsights.model_validate(payload)
    except PydanticValidationError as e:
        raise SchemaMismatch(detail=f"bad city insights: {e}")


async def get_city_info(
    city_id: str,
    cities: CitiesClient,
    recipes: RecipeStore,
    today: Optional[dt.date] = None,
) -> CityInfoResponse:
    # 1) City metadata; raises CityNotFound / UpstreamUnavailable
    insights = normalize_insights(await cities.get_insights(city_id))

    # 2) Weather for the same city
    predictions = await cities.get_weather_predictions(city_id)
    weather = tag_predictions(predictions, today or local_today())

    first = insights.coordinates[0]
    return CityInfoResponse(
        coordinates=(first.latitude, first.longitude),
        population=insights.population,
        knownFor=[k.content for k in insights.knownFor],
        weatherPredictions=weather,
        recipes=[RecipeOut(**r.to_dict()) for r in recipes.list(city_id)],
    )
