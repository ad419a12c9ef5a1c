"""Tests for bench.selector -- target resolution and fallback."""

import unittest

from bench.directory import ServerCatalog, ServerDescriptor
from bench.errors import DirectoryEmpty
from bench.geo import Coordinate
from bench.selector import select_targets


def _server(sid, distance_km):
    return ServerDescriptor(
        id=sid,
        name=f"Server {sid}",
        country="Testland",
        sponsor="Test ISP",
        url=f"http://s{sid}.example.com:8080/speedtest/upload.php",
        url2="",
        host=f"s{sid}.example.com:8080",
        coordinate=Coordinate(0.0, 0.0),
        distance_km=distance_km,
    )


class TestSelectTargets(unittest.TestCase):
    def setUp(self):
        self.catalog = ServerCatalog(
            [_server("10", 1.0), _server("20", 2.0), _server("30", 3.0), _server("40", 4.0)]
        )

    def test_empty_request_is_nearest(self):
        self.assertEqual(select_targets(self.catalog, []), [self.catalog[0]])

    def test_default_argument_is_nearest(self):
        self.assertEqual(select_targets(self.catalog), [self.catalog[0]])

    def test_single_match(self):
        self.assertEqual(select_targets(self.catalog, {30}), [self.catalog[2]])

    def test_catalog_order_preserved(self):
        targets = select_targets(self.catalog, [40, 20])
        self.assertEqual([t.id for t in targets], ["20", "40"])

    def test_duplicates_collapsed(self):
        targets = select_targets(self.catalog, [10, 10])
        self.assertEqual(targets, [self.catalog[0]])

    def test_unknown_falls_back_to_nearest(self):
        with self.assertLogs("bench.selector", level="WARNING") as logs:
            targets = select_targets(self.catalog, [999])
        self.assertEqual(targets, [self.catalog[0]])
        self.assertIn("999", logs.output[0])

    def test_partial_match_ignores_unknown(self):
        targets = select_targets(self.catalog, [999, 30])
        self.assertEqual(targets, [self.catalog[2]])

    def test_empty_catalog(self):
        with self.assertRaises(DirectoryEmpty):
            select_targets(ServerCatalog(), [10])


if __name__ == "__main__":
    unittest.main()
