"""
Static weather catalog and the pure operations served on top of it.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal, Mapping, TypedDict

Unit = Literal["celsius", "fahrenheit"]

UNITS: tuple[Unit, ...] = ("celsius", "fahrenheit")


class WeatherPayload(TypedDict):
    temperature: float
    condition: str
    humidity: int
    windSpeed: float


@dataclass(frozen=True)
class WeatherRecord:
    """Weather attributes for one city. Temperature in °F, wind in mph."""

    temperature: float
    condition: str
    humidity: int
    wind_speed: float

    def to_payload(self) -> WeatherPayload:
        return {
            "temperature": self.temperature,
            "condition": self.condition,
            "humidity": self.humidity,
            "windSpeed": self.wind_speed,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "WeatherRecord":
        try:
            return cls(
                temperature=payload["temperature"],  # type: ignore[arg-type]
                condition=str(payload["condition"]),
                humidity=payload["humidity"],  # type: ignore[arg-type]
                wind_speed=payload["windSpeed"],  # type: ignore[arg-type]
            )
        except KeyError as exc:
            raise ValueError(f"Weather payload is missing {exc.args[0]!r}") from exc


@dataclass(frozen=True)
class CityNotFound:
    city: str

    @property
    def message(self) -> str:
        return f"No weather data available for {self.city}"


CITY_CATALOG: Mapping[str, WeatherRecord] = MappingProxyType(
    {
        "New York": WeatherRecord(72, "Sunny", 45, 8),
        "London": WeatherRecord(62, "Rainy", 80, 12),
        "Tokyo": WeatherRecord(78, "Partly Cloudy", 65, 5),
        "Sydney": WeatherRecord(85, "Clear", 55, 10),
        "Paris": WeatherRecord(68, "Cloudy", 70, 7),
    }
)


def list_cities() -> list[str]:
    return list(CITY_CATALOG)


def get_weather(city: str) -> WeatherRecord | CityNotFound:
    """
    Exact, case-sensitive lookup. Unknown cities yield a CityNotFound value.
    """
    record = CITY_CATALOG.get(city)
    if record is None:
        return CityNotFound(city)
    return record


def _validate_unit(unit: str) -> Unit:
    if unit not in UNITS:
        raise ValueError(f"Unsupported unit {unit!r}. Use 'celsius' or 'fahrenheit'.")
    return unit  # type: ignore[return-value]


def convert_temperature(value: float, from_unit: str, to_unit: str) -> float:
    """
    Convert between celsius and fahrenheit.

    Equal units return the value untouched; real conversions are rounded to
    one decimal place.
    """
    source = _validate_unit(from_unit)
    target = _validate_unit(to_unit)
    if source == target:
        return value
    if source == "celsius":
        result = value * 9 / 5 + 32
    else:
        result = (value - 32) * 5 / 9
    return round(result, 1)


def weather_prompt(city: str) -> str:
    return f"What's the weather like in {city}?"


def format_weather_report(city: str, record: WeatherRecord) -> str:
    return (
        f"Weather in {city}:\n"
        f"Temperature: {record.temperature}°F\n"
        f"Condition: {record.condition}\n"
        f"Humidity: {record.humidity}%\n"
        f"Wind Speed: {record.wind_speed} mph"
    )


__all__ = [
    "CITY_CATALOG",
    "CityNotFound",
    "UNITS",
    "Unit",
    "WeatherPayload",
    "WeatherRecord",
    "convert_temperature",
    "format_weather_report",
    "get_weather",
    "list_cities",
    "weather_prompt",
]
