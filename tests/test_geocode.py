import unittest
from unittest import mock

from geopy.exc import GeocoderServiceError, GeocoderTimedOut

from routeplanner import geocode
from routeplanner.config import Settings


def fake_location(postcode="018956"):
    return mock.Mock(
        latitude=1.2834,
        longitude=103.8607,
        address="10 Bayfront Avenue, Singapore 018956",
        raw={"address": {"postcode": postcode}},
    )


class TestGeocode(unittest.TestCase):
    def setUp(self):
        geocode.configure(Settings(country_code="sg"))
        self.geocoder = mock.Mock()
        patcher = mock.patch("routeplanner.geocode._get_geocoder", return_value=self.geocoder)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(geocode.clear_cache)

    def test_postal_code_lookup(self):
        self.geocoder.geocode.return_value = fake_location()
        result = geocode.geocode_location("018956")
        self.assertEqual(result.coords, (1.2834, 103.8607))
        self.assertFalse(result.postal_mismatch)
        query = self.geocoder.geocode.call_args.args[0]
        self.assertEqual(query, {"postalcode": "018956"})
        self.assertEqual(self.geocoder.geocode.call_args.kwargs["country_codes"], "sg")

    def test_postal_mismatch(self):
        self.geocoder.geocode.return_value = fake_location(postcode="018957")
        self.assertTrue(geocode.geocode_location("018956").postal_mismatch)

    def test_address_never_mismatches(self):
        self.geocoder.geocode.return_value = fake_location(postcode="018957")
        result = geocode.geocode_location("Marina Bay Sands")
        self.assertFalse(result.postal_mismatch)
        self.assertEqual(self.geocoder.geocode.call_args.args[0], "Marina Bay Sands")

    def test_results_are_cached(self):
        self.geocoder.geocode.return_value = fake_location()
        geocode.geocode_location("018956")
        geocode.geocode_location("018956")
        self.assertEqual(self.geocoder.geocode.call_count, 1)

    def test_timeout_is_retried_once(self):
        self.geocoder.geocode.side_effect = [GeocoderTimedOut("slow"), fake_location()]
        self.assertIsNotNone(geocode.geocode_location("018956"))
        self.assertEqual(self.geocoder.geocode.call_count, 2)

    def test_service_error_gives_none(self):
        self.geocoder.geocode.side_effect = GeocoderServiceError("down")
        self.assertIsNone(geocode.geocode_location("018956"))

    def test_failures_are_not_cached(self):
        self.geocoder.geocode.side_effect = [GeocoderServiceError("down"), fake_location()]
        self.assertIsNone(geocode.geocode_location("018956"))
        self.assertIsNotNone(geocode.geocode_location("018956"))
        self.assertEqual(self.geocoder.geocode.call_count, 2)

    def test_repeated_timeouts_are_not_cached(self):
        self.geocoder.geocode.side_effect = [
            GeocoderTimedOut("slow"),
            GeocoderTimedOut("slower"),
            fake_location(),
        ]
        self.assertIsNone(geocode.geocode_location("018956"))
        self.assertIsNotNone(geocode.geocode_location("018956"))

    def test_not_found(self):
        self.geocoder.geocode.return_value = None
        self.assertIsNone(geocode.geocode_location("999999"))
        self.assertIsNone(geocode.geocode_location("   "))


if __name__ == "__main__":
    unittest.main()
