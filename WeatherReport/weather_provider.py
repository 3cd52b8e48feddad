"""Forecast source interface - the report pipeline only sees WeatherSnapshot."""
from abc import ABC, abstractmethod
from location_data import ResolvedLocation
from weather_data import WeatherSnapshot


class WeatherProviderBase(ABC):
    """A source of current conditions for resolved coordinates."""

    @abstractmethod
    def get_current(self, location: ResolvedLocation) -> WeatherSnapshot:
        """
        Fetch current conditions at ``location``.

        Returns:
            WeatherSnapshot: Values already sanitized, in the provider's unit

        Raises:
            WeatherProviderError: If the provider response is empty, flagged
                as an error or lacks the temperature field
        """
        pass


class WeatherProviderError(Exception):
    """The forecast response is unusable. Terminal for the run."""
    pass
