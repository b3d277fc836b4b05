from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import pandas as pd
import requests

from feasibility import InvalidInput

logger = logging.getLogger(__name__)

RAIN_ALERT_THRESHOLD_MM = 1.0
RAIN_ALERT_MESSAGE = "Rain expected in next 24 hours! Prepare your rooftop system."


class LocationNotFound(Exception):
    """The geocoder returned no match for the requested location."""


class DataUnavailable(Exception):
    """An upstream weather or geocoding service failed or sent unusable data."""


def _check_coordinates(lat, lon):
    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        raise InvalidInput("lat and lon must be numbers")
    if not -90 <= lat <= 90 or not -180 <= lon <= 180:
        raise InvalidInput(f"Coordinates out of range: {lat}, {lon}")
    return lat, lon


def _get_json(url: str, params: Dict[str, Any], timeout: float,
              headers: Optional[Dict[str, str]] = None, service: str = "upstream") -> Any:
    """GET a JSON document, mapping every transport or decoding failure to DataUnavailable."""
    try:
        resp = requests.get(url, params=params, headers=headers, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    except requests.exceptions.RequestException as e:
        logger.warning("%s request failed: %s", service, e)
        raise DataUnavailable(f"Could not reach the {service} service") from e
    except ValueError as e:
        logger.warning("%s returned invalid JSON: %s", service, e)
        raise DataUnavailable(f"The {service} service returned an invalid response") from e


class GeocodingClient:
    """
    Resolves free-text locations through OpenStreetMap Nominatim.

    Docs: https://nominatim.org/release-docs/latest/api/Search/
    """

    BASE_URL = "https://nominatim.openstreetmap.org/search"

    def __init__(self, user_agent: str = "rainwise-feasibility/1.0", timeout: float = 15):
        self.user_agent = user_agent
        self.timeout = timeout

    def resolve(self, location_text: str) -> Dict[str, Any]:
        """Return {lat, lon, display_name} for the best match."""
        query = (location_text or "").strip()
        if not query:
            raise LocationNotFound("Location text is empty")

        data = _get_json(
            self.BASE_URL,
            params={"format": "json", "q": query, "limit": 1},
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
            service="geocoding",
        )
        if not isinstance(data, list):
            raise DataUnavailable("The geocoding service returned an invalid response")
        if not data:
            raise LocationNotFound(f"Location not found: {query}")

        first = data[0]
        try:
            lat = float(first["lat"])
            lon = float(first["lon"])
        except (KeyError, TypeError, ValueError) as e:
            raise DataUnavailable("Geocoding result is missing coordinates") from e

        return {
            "lat": lat,
            "lon": lon,
            "display_name": first.get("display_name") or query,
        }


class WeatherClient:
    """
    Forecast, historical rainfall and current conditions.

    Open-Meteo (forecast + archive) needs no key; the OpenWeather current
    conditions endpoint needs OPENWEATHER_API_KEY.
    """

    FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
    ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/archive"
    OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"

    def __init__(self, openweather_api_key: Optional[str] = None, timeout: float = 15):
        self.openweather_api_key = openweather_api_key
        self.timeout = timeout

    def openweather_available(self) -> bool:
        return bool(self.openweather_api_key)

    def get_forecast(self, lat: float, lon: float) -> Dict[str, Any]:
        """Current conditions plus the precipitation expected over the next 24 hours."""
        lat, lon = _check_coordinates(lat, lon)
        data = _get_json(
            self.FORECAST_URL,
            params={
                "latitude": lat,
                "longitude": lon,
                "current": "temperature_2m,precipitation,wind_speed_10m,weather_code",
                "hourly": "precipitation",
                "forecast_days": 2,
                "timezone": "auto",
            },
            timeout=self.timeout,
            service="forecast",
        )
        if not isinstance(data, dict):
            raise DataUnavailable("The forecast service returned an invalid response")

        hourly = (data.get("hourly") or {}).get("precipitation") or []
        next24h = 0.0
        for value in hourly[:24]:
            try:
                next24h += float(value or 0)
            except (TypeError, ValueError):
                continue

        current = data.get("current") or {}
        rain_expected = next24h >= RAIN_ALERT_THRESHOLD_MM
        return {
            "next24h_precipitation_mm": round(next24h, 2),
            "current_temperature_c": current.get("temperature_2m", 0),
            "current_wind_kmh": current.get("wind_speed_10m", 0),
            "current_precipitation_mm": current.get("precipitation", 0),
            "weather_code": current.get("weather_code"),
            "rain_expected": rain_expected,
            "message": RAIN_ALERT_MESSAGE if rain_expected else None,
        }

    def get_annual_history(self, lat: float, lon: float, year: int) -> Dict[str, Any]:
        """Daily precipitation for a calendar year, with annual and monthly totals."""
        lat, lon = _check_coordinates(lat, lon)
        year = int(year)
        data = _get_json(
            self.ARCHIVE_URL,
            params={
                "latitude": lat,
                "longitude": lon,
                "start_date": f"{year}-01-01",
                "end_date": f"{year}-12-31",
                "daily": "precipitation_sum",
                "timezone": "auto",
            },
            timeout=self.timeout,
            service="rainfall archive",
        )
        daily = (data or {}).get("daily") if isinstance(data, dict) else None
        if not daily or not daily.get("time"):
            raise DataUnavailable(f"No rainfall history available for {year}")

        times = daily["time"]
        values = daily.get("precipitation_sum") or [None] * len(times)
        if len(values) != len(times):
            raise DataUnavailable("Rainfall history has mismatched dates and values")

        df = pd.DataFrame({"date": pd.to_datetime(times), "precipitation_mm": values})
        df["precipitation_mm"] = pd.to_numeric(df["precipitation_mm"], errors="coerce").fillna(0.0)

        monthly_totals = df.groupby(df["date"].dt.month)["precipitation_mm"].sum()
        monthly = []
        for month in range(1, 13):
            monthly.append({
                "month": pd.Timestamp(year=year, month=month, day=1).strftime("%b"),
                "rainfall": round(float(monthly_totals.get(month, 0.0)), 1),
            })

        return {
            "year": year,
            "daily": [float(v) for v in df["precipitation_mm"]],
            "annual_rainfall_mm": round(float(df["precipitation_mm"].sum()), 1),
            "monthly": monthly,
        }

    def get_current_conditions(self, lat: float, lon: float) -> Dict[str, Any]:
        """Current weather from OpenWeather in metric units."""
        if not self.openweather_available():
            raise DataUnavailable("Missing OPENWEATHER_API_KEY")
        lat, lon = _check_coordinates(lat, lon)

        data = _get_json(
            self.OPENWEATHER_URL,
            params={"lat": lat, "lon": lon, "appid": self.openweather_api_key, "units": "metric"},
            timeout=self.timeout,
            service="OpenWeather",
        )
        try:
            return {
                "temperature": data["main"]["temp"],
                "feels_like": data["main"]["feels_like"],
                "humidity": data["main"]["humidity"],
                "wind_speed": data["wind"]["speed"],
                "description": data["weather"][0]["description"],
            }
        except (KeyError, IndexError, TypeError) as e:
            logger.warning("OpenWeather response missing fields: %s", e)
            raise DataUnavailable("OpenWeather response is missing fields") from e
