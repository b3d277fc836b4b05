import unittest
from unittest.mock import MagicMock, patch

import requests

from feasibility import InvalidInput
from weather import DataUnavailable, GeocodingClient, LocationNotFound, WeatherClient


def _response(payload, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} error")
    return resp


class TestGeocodingClient(unittest.TestCase):
    def setUp(self):
        self.client = GeocodingClient(user_agent="rainwise-tests", timeout=5)

    def test_resolve_first_match(self):
        payload = [{"lat": "28.6139", "lon": "77.2090", "display_name": "New Delhi, Delhi, India"}]
        with patch("weather.requests.get", return_value=_response(payload)) as mock_get:
            result = self.client.resolve("New Delhi, IN")

        self.assertEqual({"lat": 28.6139, "lon": 77.209, "display_name": "New Delhi, Delhi, India"}, result)
        _, kwargs = mock_get.call_args
        self.assertEqual("New Delhi, IN", kwargs["params"]["q"])
        self.assertEqual("rainwise-tests", kwargs["headers"]["User-Agent"])
        self.assertEqual(5, kwargs["timeout"])

    def test_no_results_is_not_found(self):
        with patch("weather.requests.get", return_value=_response([])):
            with self.assertRaises(LocationNotFound):
                self.client.resolve("Atlantis")

    def test_blank_query_skips_the_request(self):
        with patch("weather.requests.get") as mock_get:
            with self.assertRaises(LocationNotFound):
                self.client.resolve("   ")
        mock_get.assert_not_called()

    def test_network_failure_is_data_unavailable(self):
        with patch("weather.requests.get", side_effect=requests.exceptions.ConnectionError("boom")):
            with self.assertRaises(DataUnavailable):
                self.client.resolve("Chennai")


class TestWeatherForecast(unittest.TestCase):
    def setUp(self):
        self.client = WeatherClient(timeout=5)

    def _forecast(self, hourly):
        return {
            "current": {"temperature_2m": 31.2, "precipitation": 0.0, "wind_speed_10m": 9.4, "weather_code": 3},
            "hourly": {"precipitation": hourly},
        }

    def test_rain_alert_at_one_millimetre(self):
        hourly = [0.5, 0.5] + [0.0] * 46
        with patch("weather.requests.get", return_value=_response(self._forecast(hourly))):
            result = self.client.get_forecast(28.61, 77.21)

        self.assertEqual(1.0, result["next24h_precipitation_mm"])
        self.assertTrue(result["rain_expected"])
        self.assertIsNotNone(result["message"])
        self.assertEqual(31.2, result["current_temperature_c"])
        self.assertEqual(9.4, result["current_wind_kmh"])
        self.assertEqual(3, result["weather_code"])

    def test_only_next_24_hours_count(self):
        hourly = [0.0] * 24 + [5.0] * 24
        with patch("weather.requests.get", return_value=_response(self._forecast(hourly))):
            result = self.client.get_forecast(28.61, 77.21)

        self.assertEqual(0.0, result["next24h_precipitation_mm"])
        self.assertFalse(result["rain_expected"])
        self.assertIsNone(result["message"])

    def test_null_hourly_values_are_ignored(self):
        hourly = [0.4, None, 0.5, "bad"]
        with patch("weather.requests.get", return_value=_response(self._forecast(hourly))):
            result = self.client.get_forecast(28.61, 77.21)

        self.assertFalse(result["rain_expected"])
        self.assertEqual(0.9, result["next24h_precipitation_mm"])

    def test_http_error_is_data_unavailable(self):
        with patch("weather.requests.get", return_value=_response({}, status=503)):
            with self.assertRaises(DataUnavailable):
                self.client.get_forecast(28.61, 77.21)

    def test_out_of_range_coordinates(self):
        with patch("weather.requests.get") as mock_get:
            with self.assertRaises(InvalidInput):
                self.client.get_forecast(128.0, 77.21)
        mock_get.assert_not_called()


class TestAnnualHistory(unittest.TestCase):
    def setUp(self):
        self.client = WeatherClient(timeout=5)

    def test_monthly_totals_sum_to_annual(self):
        payload = {
            "daily": {
                "time": ["2023-01-01", "2023-01-02", "2023-02-01", "2023-07-15"],
                "precipitation_sum": [1.0, None, 2.5, 40.0],
            }
        }
        with patch("weather.requests.get", return_value=_response(payload)) as mock_get:
            result = self.client.get_annual_history(28.61, 77.21, 2023)

        _, kwargs = mock_get.call_args
        self.assertEqual("2023-01-01", kwargs["params"]["start_date"])
        self.assertEqual("2023-12-31", kwargs["params"]["end_date"])

        self.assertEqual(2023, result["year"])
        self.assertEqual([1.0, 0.0, 2.5, 40.0], result["daily"])
        self.assertEqual(43.5, result["annual_rainfall_mm"])
        self.assertEqual(12, len(result["monthly"]))
        self.assertEqual({"month": "Jan", "rainfall": 1.0}, result["monthly"][0])
        self.assertEqual({"month": "Jul", "rainfall": 40.0}, result["monthly"][6])
        self.assertAlmostEqual(result["annual_rainfall_mm"], sum(m["rainfall"] for m in result["monthly"]))

    def test_missing_daily_block(self):
        with patch("weather.requests.get", return_value=_response({"error": True})):
            with self.assertRaises(DataUnavailable):
                self.client.get_annual_history(28.61, 77.21, 2023)


class TestCurrentConditions(unittest.TestCase):
    def test_requires_api_key(self):
        client = WeatherClient(openweather_api_key=None)

        self.assertFalse(client.openweather_available())
        with self.assertRaises(DataUnavailable):
            client.get_current_conditions(28.61, 77.21)

    def test_maps_openweather_payload(self):
        payload = {
            "main": {"temp": 30.1, "feels_like": 33.0, "humidity": 70},
            "wind": {"speed": 3.2},
            "weather": [{"description": "light rain"}],
        }
        client = WeatherClient(openweather_api_key="secret")
        with patch("weather.requests.get", return_value=_response(payload)) as mock_get:
            result = client.get_current_conditions(28.61, 77.21)

        _, kwargs = mock_get.call_args
        self.assertEqual("secret", kwargs["params"]["appid"])
        self.assertEqual("metric", kwargs["params"]["units"])
        self.assertEqual("light rain", result["description"])
        self.assertEqual(70, result["humidity"])

    def test_malformed_payload(self):
        client = WeatherClient(openweather_api_key="secret")
        with patch("weather.requests.get", return_value=_response({"main": {}})):
            with self.assertRaises(DataUnavailable):
                client.get_current_conditions(28.61, 77.21)


if __name__ == "__main__":
    unittest.main()
