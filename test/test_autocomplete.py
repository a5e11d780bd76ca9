"""
Tests for address autocomplete against a local Photon-style server
"""
import asyncio
import unittest

from aiohttp import web
from aiohttp.test_utils import TestServer

from foodswipe.core.exceptions import NetworkError
from foodswipe.schemas.order import GeoPoint
from foodswipe.services.geocoding.autocomplete import AddressAutocomplete, in_bbox, parse_feature

BBOX = [60.87, 23.69, 77.84, 37.08]


def feature(name, lng, lat, **props):
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lng, lat]},
        "properties": {"name": name, **props},
    }


class TestFeatureParsing(unittest.TestCase):

    def test_label_and_point(self):
        suggestion = parse_feature(feature("Liberty Market", 74.34, 31.51, city="Lahore", country="Pakistan"))
        self.assertEqual(suggestion.label, "Liberty Market, Lahore, Pakistan")
        self.assertEqual(suggestion.location, GeoPoint(lat=31.51, lng=74.34))

    def test_feature_without_point(self):
        self.assertIsNone(parse_feature({"geometry": {}, "properties": {"name": "Nowhere"}}))

    def test_bbox(self):
        self.assertTrue(in_bbox(GeoPoint(lat=31.5, lng=74.3), BBOX))
        self.assertFalse(in_bbox(GeoPoint(lat=51.5, lng=-0.12), BBOX))


class TestAddressAutocomplete(unittest.IsolatedAsyncioTestCase):
    """Test cases for AddressAutocomplete"""

    async def asyncSetUp(self):
        self.queries = []
        self.params = {}
        app = web.Application()
        app.router.add_get("/api/", self.photon)
        self.server = TestServer(app)
        await self.server.start_server()

        self.published = []
        self.autocomplete = AddressAutocomplete(
            url=str(self.server.make_url("/api/")),
            bbox=BBOX,
            debounce=0.05,
            on_results=self.published.append,
        )

    async def asyncTearDown(self):
        await self.autocomplete.close()
        await self.server.close()

    async def photon(self, request):
        query = request.query["q"]
        self.queries.append(query)
        self.params = dict(request.query)
        if query.startswith("broken"):
            return web.json_response({"message": "boom"}, status=500)
        return web.json_response({
            "type": "FeatureCollection",
            "features": [
                feature(f"{query} Lahore", 74.35, 31.52, city="Lahore"),
                feature(f"{query} London", -0.12, 51.5, city="London"),
            ],
        })

    async def test_results_outside_region_dropped(self):
        results = await self.autocomplete.search("Gulberg")

        self.assertEqual([r.label for r in results], ["Gulberg Lahore, Lahore"])
        self.assertEqual(self.queries, ["Gulberg"])

    async def test_regional_bias_sent(self):
        await self.autocomplete.search("Gulberg", limit=3)
        self.assertEqual(self.params["limit"], "3")
        self.assertEqual(float(self.params["lat"]), 31.5204)
        self.assertEqual(float(self.params["lon"]), 74.3587)

    async def test_only_last_keystroke_searched(self):
        self.autocomplete.update("Gul")
        self.autocomplete.update("Gulb")
        task = self.autocomplete.update("Gulberg")
        await task

        self.assertEqual(self.queries, ["Gulberg"])
        self.assertEqual(len(self.published), 1)
        self.assertEqual(self.autocomplete.results[0].label, "Gulberg Lahore, Lahore")

    async def test_short_query_clears_results(self):
        await self.autocomplete.update("Gulberg")
        self.assertEqual(len(self.autocomplete.results), 1)

        self.assertIsNone(self.autocomplete.update("Gu"))

        self.assertEqual(self.autocomplete.results, [])
        self.assertEqual(self.queries, ["Gulberg"])

    async def test_cancelled_lookup_never_publishes(self):
        self.autocomplete.update("Gulberg")
        self.autocomplete.cancel()
        await asyncio.sleep(0.1)

        self.assertEqual(self.queries, [])
        self.assertEqual(self.published, [])

    async def test_server_error(self):
        with self.assertRaises(NetworkError):
            await self.autocomplete.search("broken")

    async def test_failed_keystroke_lookup_keeps_results(self):
        await self.autocomplete.update("Gulberg")
        await self.autocomplete.update("broken")
        self.assertEqual(len(self.autocomplete.results), 1)

    async def test_geocode(self):
        self.assertIsNone(await self.autocomplete.geocode("DHA"))
        point = await self.autocomplete.geocode("House 5, Gulberg")
        self.assertEqual(point, GeoPoint(lat=31.52, lng=74.35))
        self.assertIsNone(await self.autocomplete.geocode("broken address"))


if __name__ == "__main__":
    unittest.main()
