"""Unit tests for bench.locator -- client config parsing."""

import unittest

from bench.errors import LocatorUnavailable
from bench.geo import Coordinate
from bench.locator import ClientInfo, parse_client_info


class TestParseClientInfo(unittest.TestCase):
    def test_nested_client(self):
        doc = (
            '<settings><client ip="198.51.100.4" lat="48.85" lon="2.35" '
            'isp="Lutece Telecom" country="FR" /></settings>'
        )
        info = parse_client_info(doc)
        self.assertEqual(info.ip, "198.51.100.4")
        self.assertEqual(info.isp, "Lutece Telecom")
        self.assertEqual(info.country, "FR")
        self.assertEqual(info.coordinate, Coordinate(48.85, 2.35))

    def test_bare_client_root(self):
        info = parse_client_info('<client ip="1.2.3.4" lat="1" lon="2" />')
        self.assertEqual(info.coordinate, Coordinate(1.0, 2.0))

    def test_malformed_coordinates(self):
        with self.assertLogs("bench.geo", level="WARNING"):
            info = parse_client_info('<client ip="1.2.3.4" lat="?" lon="x" />')
        self.assertEqual(info.coordinate, Coordinate(0.0, 0.0))

    def test_missing_client(self):
        with self.assertRaises(LocatorUnavailable):
            parse_client_info("<settings><server-config /></settings>")

    def test_not_xml(self):
        with self.assertRaises(LocatorUnavailable):
            parse_client_info("not xml at all")


class TestClientInfo(unittest.TestCase):
    def test_to_dict(self):
        ci = ClientInfo(ip="1.2.3.4", isp="TestISP", country="DE", coordinate=Coordinate(50.0, 10.0))
        d = ci.to_dict()
        self.assertEqual(d["ip"], "1.2.3.4")
        self.assertEqual(d["isp"], "TestISP")
        self.assertEqual(d["lat"], 50.0)
        self.assertEqual(d["lon"], 10.0)


if __name__ == "__main__":
    unittest.main()
