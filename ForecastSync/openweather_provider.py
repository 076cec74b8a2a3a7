"""OpenWeather daily forecast API provider implementation."""
import logging
import requests
from typing import List
from forecast_provider import ForecastProviderBase, ForecastProviderError
from forecast_record import RawForecastItem


class OpenWeatherForecastProvider(ForecastProviderBase):
    """
    Forecast provider using the OpenWeather daily forecast API.

    One GET per request: https://openweathermap.org/forecast16
    The place is passed as a free-text city query (``q``) and the
    number of days as ``cnt``.
    """

    BASE_URL = "https://api.openweathermap.org/data/2.5/forecast/daily"

    def __init__(
        self,
        api_key: str,
        units: str = "metric",
        lang: str = "en",
        timeout: int = 10,
        base_url: str = BASE_URL
    ):
        """
        Initialize OpenWeather forecast provider.

        Args:
            api_key: OpenWeather API key
            units: Temperature units ("metric", "imperial", or "standard")
            lang: Language code for descriptions (e.g., "en", "de")
            timeout: HTTP request timeout in seconds
            base_url: Endpoint override, used against local test servers
        """
        self.api_key = api_key
        self.units = units
        self.lang = lang
        self.timeout = timeout
        self.base_url = base_url

    def fetch(self, place: str, count: int) -> List[RawForecastItem]:
        """
        Fetch daily forecast from OpenWeather.

        Returns:
            List[RawForecastItem]: One item per forecast day

        Raises:
            ForecastProviderError: If the request or parsing fails
        """
        params = {
            "q": place,
            "cnt": count,
            "appid": self.api_key,
            "units": self.units,
            "lang": self.lang,
        }

        try:
            logging.info(f"Making OpenWeather forecast request: {self.base_url}")
            logging.debug(f"Request parameters: q={place!r}, cnt={count}, units={self.units}, lang={self.lang}")

            response = requests.get(self.base_url, params=params, timeout=self.timeout)

            logging.info(f"API response status: {response.status_code}")
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during API request: {e}")
            raise ForecastProviderError(f"Network error: {str(e)}")

        if not response.ok:
            logging.error(f"API request failed with status {response.status_code}")
            raise self._parse_error_response(response)

        try:
            data = response.json()
            logging.debug(f"API response (truncated): {str(data)[:500]}...")

            entries = data.get("list")
            if entries is None:
                logging.error("Response missing 'list' array")
                raise ForecastProviderError("Response missing 'list' array")

            items = [self._parse_item(entry) for entry in entries]
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logging.error(f"Failed to parse API response: {e}", exc_info=True)
            raise ForecastProviderError(f"Failed to parse response: {str(e)}")

        logging.info(f"Parsed {len(items)} forecast days for {place!r}")
        return items

    @staticmethod
    def _parse_item(entry: dict) -> RawForecastItem:
        weather = entry.get("weather") or []
        return RawForecastItem(
            timestamp=int(entry["dt"]),
            day_temperature=float(entry["temp"]["day"]),
            pressure=int(entry["pressure"]),
            humidity=int(entry["humidity"]),
            weather_descriptions=[w.get("description", "") for w in weather],
        )

    @staticmethod
    def _parse_error_response(response: requests.Response) -> ForecastProviderError:
        """Build the error for an OpenWeather error response (best effort)."""
        try:
            error_data = response.json()
            code = error_data["cod"]
            message = error_data["message"]
        except (KeyError, ValueError, TypeError) as e:
            # Not the documented {cod, message} body, use HTTP status
            logging.error(f"Unparseable error response: HTTP {response.status_code} ({e})")
            return ForecastProviderError(
                f"HTTP {response.status_code}", http_status=response.status_code
            )

        logging.error(f"OpenWeather API error response: {error_data}")
        return ForecastProviderError.remote(str(code), str(message), response.status_code)
