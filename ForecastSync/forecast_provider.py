"""Forecast provider abstraction - allows swapping different forecast APIs."""
from abc import ABC, abstractmethod
from typing import List, Optional

from forecast_record import RawForecastItem
from forecast_resource import FailureDetail, REMOTE_API, TRANSPORT


class ForecastProviderBase(ABC):
    """Abstract base class for daily forecast providers."""

    @abstractmethod
    def fetch(self, place: str, count: int) -> List[RawForecastItem]:
        """
        Fetch up to ``count`` days of forecast for a place.

        Args:
            place: Place name as typed by the user (may be empty)
            count: Number of days requested

        Returns:
            List of raw forecast items in provider order

        Raises:
            ForecastProviderError: If the provider fails to fetch data
        """
        pass


class ForecastProviderError(Exception):
    """Exception raised when a forecast provider fails."""

    def __init__(
        self,
        message: str,
        kind: str = TRANSPORT,
        code: Optional[str] = None,
        http_status: Optional[int] = None
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.code = code
        self.http_status = http_status

    @classmethod
    def remote(cls, code: str, message: str, http_status: int) -> "ForecastProviderError":
        """Error parsed from an API error body."""
        return cls(message, kind=REMOTE_API, code=code, http_status=http_status)

    def to_detail(self) -> FailureDetail:
        return FailureDetail(
            kind=self.kind,
            message=self.message,
            code=self.code,
            http_status=self.http_status,
        )
