"""Tests for bench.orchestrator -- probe sequencing, degradation and reporting."""

import asyncio
import math
import unittest
from typing import Dict, List, Tuple

from bench.directory import ServerCatalog, ServerDescriptor
from bench.geo import Coordinate
from bench.orchestrator import (
    BenchmarkOrchestrator,
    ProbeOutcome,
    TargetResult,
    aggregate,
)
from bench.probes import ProbeFailed
from bench.selector import select_targets
from ui.sinks import MemorySink


def _server(sid, distance_km=0.0):
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


class FakeProbes:
    """Canned readings keyed by URL; values may be exceptions to raise."""

    def __init__(self, readings: Dict[str, Tuple], delays: Dict[str, float] = None):
        self.readings = readings
        self.delays = delays or {}
        self.calls: List[Tuple[str, str, object]] = []

    async def _answer(self, kind, url, index, hint=None):
        self.calls.append((kind, url, hint))
        await asyncio.sleep(self.delays.get(url, 0))
        value = self.readings[url][index]
        if isinstance(value, BaseException):
            raise value
        if value == "hang":
            await asyncio.sleep(3600)
        return value

    async def ping(self, url):
        return await self._answer("ping", url, 0)

    async def download_throughput(self, url, latency_ms):
        return await self._answer("download", url, 1, latency_ms)

    async def upload_throughput(self, url, latency_ms):
        return await self._answer("upload", url, 2, latency_ms)


def _result(sid, dl, ul):
    return TargetResult(
        server=_server(sid),
        latency=ProbeOutcome(5.0),
        download=ProbeOutcome(dl),
        upload=ProbeOutcome(ul),
    )


class TestAggregate(unittest.TestCase):
    def test_mean_of_three(self):
        avg = aggregate([_result("1", 10.0, 1.0), _result("2", 20.0, 2.0), _result("3", 30.0, 6.0)])
        self.assertAlmostEqual(avg.download_mbps, 20.0)
        self.assertAlmostEqual(avg.upload_mbps, 3.0)

    def test_single_has_no_average(self):
        self.assertIsNone(aggregate([_result("1", 10.0, 1.0)]))

    def test_empty_has_no_average(self):
        self.assertIsNone(aggregate([]))

    def test_failed_reading_counts_as_zero(self):
        failed = TargetResult(
            server=_server("2"),
            latency=ProbeOutcome(5.0),
            download=ProbeOutcome.failed("boom"),
            upload=ProbeOutcome(4.0),
        )
        avg = aggregate([_result("1", 10.0, 2.0), failed])
        self.assertAlmostEqual(avg.download_mbps, 5.0)
        self.assertAlmostEqual(avg.upload_mbps, 3.0)


class TestProbeOutcome(unittest.TestCase):
    def test_failed(self):
        o = ProbeOutcome.failed("timeout")
        self.assertEqual(o.value, 0.0)
        self.assertFalse(o.ok)
        self.assertEqual(o.to_dict(), {"value": 0.0, "ok": False, "error": "timeout"})

    def test_measured_zero_is_ok(self):
        self.assertTrue(ProbeOutcome(0.0).ok)
        self.assertNotIn("error", ProbeOutcome(0.0).to_dict())


class TestRun(unittest.IsolatedAsyncioTestCase):
    async def test_nearest_only_scenario(self):
        near, far = _server("1", 5.0), _server("2", 50.0)
        catalog = ServerCatalog([near, far])
        probes = FakeProbes({near.url: (12.0, 80.0, 20.0), far.url: (30.0, 1.0, 1.0)})
        sink = MemorySink()

        report = await BenchmarkOrchestrator(probes, sink).run(select_targets(catalog, []))

        self.assertEqual({url for _, url, _ in probes.calls}, {near.url})
        self.assertEqual(
            sink.lines,
            [
                "Target Server: [   1]     5.00km Server 1 (Testland) by Test ISP",
                "Download: 80.00 Mbit/s",
                "Upload: 20.00 Mbit/s",
            ],
        )
        self.assertFalse(any("Avg" in line for line in sink.lines))
        self.assertIsNone(report.average)
        self.assertEqual(report.lines, sink.lines)

    async def test_two_requested_scenario(self):
        servers = [_server("1", 5.0), _server("2", 10.0), _server("3", 20.0)]
        catalog = ServerCatalog(servers)
        probes = FakeProbes({
            servers[0].url: (1.0, 999.0, 999.0),
            servers[1].url: (10.0, 40.0, 10.0),
            servers[2].url: (20.0, 60.0, 30.0),
        })
        sink = MemorySink()

        targets = select_targets(catalog, [3, 2])
        report = await BenchmarkOrchestrator(probes, sink).run(targets)

        rows = [line for line in sink.lines if line.startswith("[")]
        self.assertEqual(
            rows,
            [
                "[   2] Download: 40.00 Mbit/s, Upload: 10.00 Mbit/s",
                "[   3] Download: 60.00 Mbit/s, Upload: 30.00 Mbit/s",
            ],
        )
        self.assertEqual(sink.lines[-2], "Download Avg: 50.00 Mbit/s")
        self.assertEqual(sink.lines[-1], "Upload Avg: 20.00 Mbit/s")
        self.assertAlmostEqual(report.average.download_mbps, 50.0)
        self.assertEqual(list(report.by_id()), ["2", "3"])

    async def test_probe_order_and_latency_hint(self):
        s = _server("1")
        probes = FakeProbes({s.url: (17.5, 50.0, 10.0)})
        await BenchmarkOrchestrator(probes, MemorySink()).run([s])
        self.assertEqual(
            probes.calls,
            [("ping", s.url, None), ("download", s.url, 17.5), ("upload", s.url, 17.5)],
        )

    async def test_probe_error_degrades_and_continues(self):
        a, b = _server("1"), _server("2")
        probes = FakeProbes({
            a.url: (10.0, ProbeFailed("no data transferred"), 5.0),
            b.url: (10.0, 30.0, 15.0),
        })
        sink = MemorySink()

        with self.assertLogs("bench.orchestrator", level="WARNING"):
            report = await BenchmarkOrchestrator(probes, sink).run([a, b])

        first = report.results[0]
        self.assertFalse(first.download.ok)
        self.assertEqual(first.download.value, 0.0)
        self.assertEqual(first.download.error, "no data transferred")
        self.assertTrue(first.upload.ok)
        self.assertEqual(first.failed_probes, ["download"])
        self.assertIn("[   1] Download:  0.00 Mbit/s, Upload:  5.00 Mbit/s (failed)", sink.lines)
        self.assertTrue(report.results[1].download.ok)
        self.assertEqual(sink.lines[-2], "Download Avg: 15.00 Mbit/s")

    async def test_failed_latency_uses_zero_hint(self):
        s = _server("1")
        probes = FakeProbes({s.url: (OSError("unreachable"), 50.0, 10.0)})
        with self.assertLogs("bench.orchestrator", level="WARNING"):
            report = await BenchmarkOrchestrator(probes, MemorySink()).run([s])
        self.assertEqual(probes.calls[1], ("download", s.url, 0.0))
        self.assertFalse(report.results[0].latency.ok)
        self.assertTrue(report.results[0].download.ok)

    async def test_timeout_degrades(self):
        s = _server("1")
        probes = FakeProbes({s.url: (10.0, "hang", 8.0)})
        sink = MemorySink()
        orchestrator = BenchmarkOrchestrator(probes, sink, probe_timeout=0.05)

        with self.assertLogs("bench.orchestrator", level="WARNING"):
            report = await orchestrator.run([s])

        download = report.results[0].download
        self.assertFalse(download.ok)
        self.assertIn("timed out", download.error)
        self.assertTrue(report.results[0].upload.ok)
        self.assertEqual(sink.lines[-2], "Download:  0.00 Mbit/s (failed)")
        self.assertEqual(sink.lines[-1], "Upload:  8.00 Mbit/s")

    async def test_invalid_readings_degrade(self):
        s = _server("1")
        probes = FakeProbes({s.url: (10.0, math.nan, -3.0)})
        with self.assertLogs("bench.orchestrator", level="WARNING"):
            report = await BenchmarkOrchestrator(probes, MemorySink()).run([s])
        self.assertEqual(report.results[0].failed_probes, ["download", "upload"])

    async def test_measured_zero_is_not_failure(self):
        s = _server("1")
        probes = FakeProbes({s.url: (10.0, 0.0, 0.0)})
        sink = MemorySink()
        report = await BenchmarkOrchestrator(probes, sink).run([s])
        self.assertEqual(report.results[0].failed_probes, [])
        self.assertEqual(sink.lines[-2], "Download:  0.00 Mbit/s")

    async def test_parallel_keeps_target_order(self):
        servers = [_server("1"), _server("2"), _server("3")]
        probes = FakeProbes(
            {s.url: (1.0, float(i + 1) * 10, 1.0) for i, s in enumerate(servers)},
            delays={servers[0].url: 0.03, servers[1].url: 0.01, servers[2].url: 0.0},
        )
        sink = MemorySink()

        report = await BenchmarkOrchestrator(probes, sink, concurrency=3).run(servers)

        self.assertEqual([r.server_id for r in report.results], ["1", "2", "3"])
        self.assertTrue(sink.lines[0].startswith("Target Server: [   1]"))
        self.assertTrue(sink.lines[1].startswith("Target Server: [   2]"))
        self.assertTrue(sink.lines[2].startswith("Target Server: [   3]"))
        self.assertTrue(sink.lines[3].startswith("[   1] Download: 10.00"))
        self.assertTrue(sink.lines[5].startswith("[   3] Download: 30.00"))
        # The targets really did overlap: server 3 finished before server 1 started downloading.
        order = [(kind, url) for kind, url, _ in probes.calls]
        self.assertLess(order.index(("upload", servers[2].url)), order.index(("download", servers[0].url)))

    async def test_parallel_keeps_per_target_probe_order(self):
        servers = [_server("1"), _server("2")]
        probes = FakeProbes({s.url: (1.0, 2.0, 3.0) for s in servers})
        await BenchmarkOrchestrator(probes, MemorySink(), concurrency=2).run(servers)
        for s in servers:
            kinds = [kind for kind, url, _ in probes.calls if url == s.url]
            self.assertEqual(kinds, ["ping", "download", "upload"])

    async def test_empty_targets_rejected(self):
        with self.assertRaises(ValueError):
            await BenchmarkOrchestrator(FakeProbes({}), MemorySink()).run([])

    async def test_report_to_dict(self):
        a, b = _server("1"), _server("2")
        probes = FakeProbes({a.url: (1.0, 10.0, 1.0), b.url: (2.0, 20.0, 3.0)})
        report = await BenchmarkOrchestrator(probes, MemorySink()).run([a, b])
        d = report.to_dict()
        self.assertEqual(len(d["servers"]), 2)
        self.assertEqual(d["servers"][0]["download_mbps"], {"value": 10.0, "ok": True})
        self.assertEqual(d["average"], {"download_mbps": 15.0, "upload_mbps": 2.0})


if __name__ == "__main__":
    unittest.main()
