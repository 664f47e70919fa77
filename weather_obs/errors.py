"""Exception hierarchy shared by the weather_obs subpackages."""


class WeatherObsError(Exception):
    """Base class for weather_obs errors."""
    pass
