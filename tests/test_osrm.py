"""
OSRM strategy tests.

The routing service is replaced with ``httpx.MockTransport`` so request
shape, response parsing and the failure taxonomy can be checked offline.
Deadline tests run against a local asyncio server that trickles its
response, since a steady trickle never trips httpx's per-phase timeouts.
"""

import asyncio
import json
import math
import time

import httpx
import pytest
import pytest_asyncio

from transit_planner.domain.entities import Coordinate
from transit_planner.domain.errors import (
    CoordinateValidationError,
    RoutingNetworkError,
    RoutingResponseError,
    RoutingTimeoutError,
    RoutingUpstreamError,
)
from transit_planner.infrastructure.osrm import OSRMStrategy, validate_coordinates

AIRPORT = Coordinate(23.8513, 90.4081)
BANANI = Coordinate(23.7937, 90.4066)
GULSHAN = Coordinate(23.7806, 90.4163)


def _strategy(handler) -> OSRMStrategy:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OSRMStrategy(base_url="http://osrm.test/", timeout=2.0, client=client)


def _table(distances, durations=None, code="Ok"):
    body = {"code": code, "distances": distances}
    if durations is not None:
        body["durations"] = durations
    return httpx.Response(200, json=body)


class TestValidation:
    @pytest.mark.parametrize(
        "coord, match",
        [
            (Coordinate(91, 0), "Invalid latitude: 91"),
            (Coordinate(-90.5, 0), "Invalid latitude"),
            (Coordinate(0, 181), "Invalid longitude: 181"),
            (Coordinate(0, -180.01), "Invalid longitude"),
            (Coordinate(math.nan, 0), "Invalid coordinates"),
            (Coordinate(0, math.nan), "Invalid coordinates"),
        ],
    )
    def test_rejects_bad_coordinates(self, coord, match):
        with pytest.raises(CoordinateValidationError, match=match):
            validate_coordinates([coord])

    def test_accepts_boundaries(self):
        validate_coordinates(
            [Coordinate(90, 180), Coordinate(-90, -180), Coordinate(0, 0)]
        )

    @pytest.mark.asyncio
    async def test_invalid_coordinate_makes_no_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return _table([[0]])

        strategy = _strategy(handler)
        with pytest.raises(CoordinateValidationError):
            await strategy.calculate_distances([AIRPORT], [Coordinate(95, 90)])
        assert calls == []


class TestCalculateDistances:
    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return _table([[0, 6400], [6400, 0]], [[0, 900], [900, 0]])

        await _strategy(handler).calculate_distances([AIRPORT], [BANANI])

        url = seen["url"]
        assert url.host == "osrm.test"
        assert url.path == (
            "/table/v1/driving/90.4081,23.8513;90.4066,23.7937"
        )
        assert url.params["annotations"] == "distance,duration"

    @pytest.mark.asyncio
    async def test_meters_converted_to_km(self):
        def handler(request):
            return _table([[0, 5000], [5000, 0]], [[0, 600], [600, 0]])

        [[cell]] = await _strategy(handler).calculate_distances([AIRPORT], [BANANI])

        assert cell.distance == 5.0
        assert cell.duration == 600.0
        assert cell.method == "OSRM"

    @pytest.mark.asyncio
    async def test_origin_destination_block_is_sliced(self):
        # 1 origin + 2 destinations -> 3x3 all-pairs matrix; we want row 0,
        # columns 1 and 2.
        distances = [
            [0, 6400, 9100],
            [6400, 0, 1500],
            [9100, 1500, 0],
        ]
        durations = [
            [0, 840, 1200],
            [840, 0, 300],
            [1200, 300, 0],
        ]

        def handler(request):
            return _table(distances, durations)

        matrix = await _strategy(handler).calculate_distances(
            [AIRPORT], [BANANI, GULSHAN]
        )

        assert len(matrix) == 1
        assert [c.distance for c in matrix[0]] == [6.4, 9.1]
        assert [c.duration for c in matrix[0]] == [840.0, 1200.0]

    @pytest.mark.asyncio
    async def test_missing_durations_default_to_zero(self):
        def handler(request):
            return _table([[0, 2000], [2000, 0]])

        [[cell]] = await _strategy(handler).calculate_distances([AIRPORT], [BANANI])
        assert cell.distance == 2.0
        assert cell.duration == 0.0


class TestFailures:
    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(RoutingTimeoutError, match="timed out after 2000ms"):
            await _strategy(handler).calculate_distances([AIRPORT], [BANANI])

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(RoutingNetworkError, match="unreachable"):
            await _strategy(handler).calculate_distances([AIRPORT], [BANANI])

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        def handler(request):
            return httpx.Response(503)

        with pytest.raises(RoutingUpstreamError, match="OSRM API error: 503"):
            await _strategy(handler).calculate_distances([AIRPORT], [BANANI])

    @pytest.mark.asyncio
    async def test_non_ok_code_uses_upstream_message(self):
        def handler(request):
            return httpx.Response(
                200, json={"code": "NoSegment", "message": "Could not find a matching segment"}
            )

        with pytest.raises(RoutingUpstreamError, match="matching segment"):
            await _strategy(handler).calculate_distances([AIRPORT], [BANANI])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"code": "Ok"}, {"code": "Ok", "distances": []}])
    async def test_missing_distances(self, body):
        def handler(request):
            return httpx.Response(200, json=body)

        with pytest.raises(RoutingResponseError, match="Invalid response format"):
            await _strategy(handler).calculate_distances([AIRPORT], [BANANI])

    @pytest.mark.asyncio
    async def test_unroutable_cell(self):
        def handler(request):
            return _table([[0, None], [None, 0]])

        with pytest.raises(RoutingResponseError, match="no route"):
            await _strategy(handler).calculate_distances([AIRPORT], [BANANI])

    @pytest.mark.asyncio
    async def test_body_not_json(self):
        def handler(request):
            return httpx.Response(200, text="<html>gateway</html>")

        with pytest.raises(RoutingResponseError):
            await _strategy(handler).calculate_distances([AIRPORT], [BANANI])


# ── Wall-clock deadline (real socket) ─────────────────────────────────

SLOW_BODY = json.dumps(
    {"code": "Ok", "distances": [[0, 5000], [5000, 0]], "durations": [[0, 600], [600, 0]]}
).encode()


@pytest_asyncio.fixture
async def trickling_osrm():
    """Local server answering 200 with a valid table, one byte every 20 ms."""

    async def handle(reader, writer):
        try:
            await reader.readuntil(b"\r\n\r\n")
            writer.write(
                b"HTTP/1.1 200 OK\r\n"
                b"Content-Type: application/json\r\n"
                b"Content-Length: %d\r\n\r\n" % len(SLOW_BODY)
            )
            for i in range(len(SLOW_BODY)):
                if writer.is_closing():
                    break
                writer.write(SLOW_BODY[i : i + 1])
                await writer.drain()
                await asyncio.sleep(0.02)
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    client = httpx.AsyncClient(trust_env=False)
    yield f"http://127.0.0.1:{port}", client
    await client.aclose()
    server.close()
    await server.wait_closed()


class TestDeadline:
    @pytest.mark.asyncio
    async def test_trickled_response_hits_deadline(self, trickling_osrm):
        base_url, client = trickling_osrm
        strategy = OSRMStrategy(base_url=base_url, timeout=0.3, client=client)

        started = time.perf_counter()
        with pytest.raises(RoutingTimeoutError, match="timed out after 300ms"):
            await strategy.calculate_distances([Coordinate(1, 1)], [Coordinate(2, 2)])

        assert time.perf_counter() - started < 1.0

    @pytest.mark.asyncio
    async def test_trickled_probe_reports_unavailable(self, trickling_osrm):
        base_url, client = trickling_osrm
        strategy = OSRMStrategy(base_url=base_url, probe_timeout=0.3, client=client)

        started = time.perf_counter()
        assert await strategy.is_available() is False
        assert time.perf_counter() - started < 1.0

    @pytest.mark.asyncio
    async def test_fast_enough_trickle_still_succeeds(self, trickling_osrm):
        base_url, client = trickling_osrm
        strategy = OSRMStrategy(base_url=base_url, timeout=10.0, client=client)

        [[cell]] = await strategy.calculate_distances([Coordinate(1, 1)], [Coordinate(2, 2)])

        assert cell.distance == 5.0
        assert cell.duration == 600.0


class TestAvailability:
    @pytest.mark.asyncio
    async def test_available_when_probe_succeeds(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            return _table([[0, 0], [0, 0]])

        assert await _strategy(handler).is_available() is True
        assert seen["path"] == "/table/v1/driving/0,0;0,0"

    @pytest.mark.asyncio
    async def test_unavailable_on_error_status(self):
        assert await _strategy(lambda r: httpx.Response(500)).is_available() is False

    @pytest.mark.asyncio
    async def test_unavailable_on_network_error_never_raises(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        assert await _strategy(handler).is_available() is False

    @pytest.mark.asyncio
    async def test_aclose_keeps_injected_client(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        strategy = OSRMStrategy(base_url="http://osrm.test", client=client)
        await strategy.aclose()
        assert not client.is_closed
        await client.aclose()
