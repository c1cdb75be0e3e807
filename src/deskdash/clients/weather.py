import logging
from dataclasses import dataclass
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

WTTR_URL = "https://wttr.in/{city}?format=j1"


class WeatherError(Exception):
    """Raised when current conditions cannot be fetched or parsed."""


@dataclass
class Weather:
    name: str
    temp: float
    description: str
    icon: str


# wttr.in weather codes grouped by the art they share
_CLOUD_CODES = {"116", "119", "122", "143", "248", "260"}
_RAIN_CODES = {
    "176", "263", "266", "281", "284", "293", "296", "299", "302", "305",
    "308", "311", "314", "317", "320", "386", "389", "392", "395",
    "200", "201", "202", "210", "211", "212", "221", "230", "231", "232",
}
_SNOW_CODES = {
    "227", "323", "326", "329", "332", "335", "338", "350", "353", "356",
    "359", "362", "365", "368", "371", "374", "377",
}


def icon_for_code(code: str) -> str:
    """Map a wttr.in weather code to one of: clear, cloud, rain, snow."""
    if code in _CLOUD_CODES:
        return "cloud"
    if code in _RAIN_CODES:
        return "rain"
    if code in _SNOW_CODES:
        return "snow"
    return "clear"


WEATHER_ART = {
    "clear": (
        "    \\   /\n"
        "    . - .\n"
        "-- (     ) --\n"
        "    ' - '\n"
        "    /   \\",
        "#FFD700",
    ),
    "cloud": (
        "   .--.\n"
        ".-(    ).\n"
        "(_______)",
        "#FFF8B3",
    ),
    "rain": (
        "   .--.\n"
        ".-(    ).\n"
        "(_______)\n"
        " / / / /\n"
        "/ / / /",
        "#61afef",
    ),
    "snow": (
        "   .--.\n"
        ".-(    ).\n"
        "(_______)\n"
        " * * * *\n"
        "* * * *",
        "#FFFFFF",
    ),
}


def parse_weather(city: str, data: dict) -> Weather:
    """Convert a wttr.in j1 document into a Weather."""
    conditions = data.get("current_condition") or []
    if not conditions:
        raise WeatherError("no weather data available")
    current = conditions[0]

    try:
        temp = float(current.get("temp_C", ""))
    except (TypeError, ValueError) as e:
        raise WeatherError(f"failed to parse temperature: {e}") from e

    name = city
    areas = data.get("nearest_area") or []
    if areas and areas[0].get("areaName"):
        name = areas[0]["areaName"][0].get("value", city)

    description = "Unknown"
    if current.get("weatherDesc"):
        description = current["weatherDesc"][0].get("value", description)

    return Weather(
        name=name,
        temp=temp,
        description=description,
        icon=icon_for_code(str(current.get("weatherCode", ""))),
    )


def get_weather(city: str) -> Weather:
    """Fetch current conditions for a city name from wttr.in."""
    url = WTTR_URL.format(city=quote(city))
    try:
        response = httpx.get(url, timeout=15, follow_redirects=True)
        _ = response.raise_for_status()
        data = response.json()
    except httpx.TimeoutException as e:
        logger.error("Weather request timed out")
        raise WeatherError("weather request timed out") from e
    except httpx.HTTPStatusError as e:
        logger.error("Weather API returned error: %s", e.response.status_code)
        raise WeatherError(
            f"weather API request failed with status: {e.response.status_code}"
        ) from e
    except httpx.RequestError as e:
        logger.error("Weather request failed: %s", e)
        raise WeatherError(f"weather request failed: {e}") from e
    except ValueError as e:
        logger.error("Failed to parse weather response: %s", e)
        raise WeatherError("could not decode weather response") from e

    if not isinstance(data, dict):
        raise WeatherError("unexpected weather response")
    return parse_weather(city, data)
