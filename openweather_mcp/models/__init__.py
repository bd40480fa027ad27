from .arguments import LocationQueryArguments, WeatherArguments
from .results import LocationInfo, WeatherReport

__all__ = [
    "LocationInfo",
    "LocationQueryArguments",
    "WeatherArguments",
    "WeatherReport",
]
