"""Tests for services/_helpers.py: safe_price, dig, request_json, attempt."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from Price_Pulse.services._helpers import (
    HTTP_OK,
    USER_AGENT,
    attempt,
    build_http_client,
    dig,
    request_json,
    safe_price,
)
from Price_Pulse.utils.exceptions import (
    DataSourceUnavailableError,
    MalformedPayloadError,
)

ClientFactory = Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]

# ---------------------------------------------------------------------------
# safe_price
# ---------------------------------------------------------------------------


class TestSafePrice:
    """Only finite positive numbers are prices."""

    def test_number(self) -> None:
        """Positive finite numbers pass through."""
        assert safe_price(3.21) == pytest.approx(3.21)

    def test_numeric_string(self) -> None:
        """Numeric strings are parsed."""
        assert safe_price("3.21") == pytest.approx(3.21)

    @pytest.mark.parametrize(
        "value",
        [None, True, 0, -1.5, "nan", "inf", float("-inf"), "abc", "", [], {}],
    )
    def test_rejected(self, value: object) -> None:
        """Zero, negatives, NaN, infinity and junk give None."""
        assert safe_price(value) is None


# ---------------------------------------------------------------------------
# dig
# ---------------------------------------------------------------------------


class TestDig:
    """Nested lookups that never raise."""

    def test_nested_dict_and_list(self) -> None:
        """Keys and indexes walk into nested payloads."""
        payload = {"result": {"FILUSD": {"c": ["3.21", "10"]}}}
        assert dig(payload, "result", "FILUSD", "c", 0) == "3.21"

    def test_negative_index(self) -> None:
        """Negative indexes count from the end."""
        assert dig([1, 2, 3], -1) == 3

    def test_missing_key(self) -> None:
        """A missing key gives None."""
        assert dig({"a": 1}, "b") is None

    def test_index_out_of_range(self) -> None:
        """An out-of-range index gives None."""
        assert dig([1], 5) is None

    def test_wrong_container_type(self) -> None:
        """Indexing the wrong container type gives None."""
        assert dig({"a": "text"}, "a", 0) is None
        assert dig([{"a": 1}], "a") is None


# ---------------------------------------------------------------------------
# request_json
# ---------------------------------------------------------------------------


class TestRequestJson:
    """HTTP status and body decoding map onto the exception hierarchy."""

    @pytest.mark.asyncio()
    async def test_ok(self, mock_client: ClientFactory) -> None:
        """A 200 response returns its decoded JSON."""
        async with mock_client(lambda r: httpx.Response(HTTP_OK, json={"ok": 1})) as client:
            body = await request_json(client, "GET", "https://x.test", asset="FIL", source="t")
        assert body == {"ok": 1}

    @pytest.mark.asyncio()
    async def test_non_200(self, mock_client: ClientFactory) -> None:
        """Other statuses raise DataSourceUnavailableError with the status."""
        async with mock_client(lambda r: httpx.Response(503)) as client:
            with pytest.raises(DataSourceUnavailableError) as exc_info:
                await request_json(client, "GET", "https://x.test", asset="FIL", source="t")
        assert exc_info.value.http_status == 503
        assert exc_info.value.source == "t"
        assert exc_info.value.asset == "FIL"

    @pytest.mark.asyncio()
    async def test_transport_error(self, mock_client: ClientFactory) -> None:
        """Transport errors raise DataSourceUnavailableError."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(DataSourceUnavailableError):
                await request_json(client, "GET", "https://x.test", asset="FIL", source="t")

    @pytest.mark.asyncio()
    async def test_not_json(self, mock_client: ClientFactory) -> None:
        """A non-JSON body raises MalformedPayloadError."""
        async with mock_client(lambda r: httpx.Response(HTTP_OK, text="<html>")) as client:
            with pytest.raises(MalformedPayloadError):
                await request_json(client, "GET", "https://x.test", asset="FIL", source="t")


# ---------------------------------------------------------------------------
# attempt
# ---------------------------------------------------------------------------


class TestAttempt:
    """Provider failures become None; bugs propagate."""

    @pytest.mark.asyncio()
    async def test_success_passthrough(self) -> None:
        """A successful fetch returns its value."""
        async def fetch() -> float:
            return 3.0

        assert await attempt(fetch, label="t") == pytest.approx(3.0)

    @pytest.mark.asyncio()
    async def test_domain_error_is_none(self) -> None:
        """DataFetchError becomes None."""
        async def fetch() -> float:
            raise MalformedPayloadError("bad", asset="FIL", source="t")

        assert await attempt(fetch, label="t") is None

    @pytest.mark.asyncio()
    async def test_timeout_is_none(self) -> None:
        """Timeouts become None."""
        async def fetch() -> float:
            raise TimeoutError

        assert await attempt(fetch, label="t") is None

    @pytest.mark.asyncio()
    async def test_unexpected_error_propagates(self) -> None:
        """Anything else is a bug and propagates."""
        async def fetch() -> float:
            raise KeyError("bug")

        with pytest.raises(KeyError):
            await attempt(fetch, label="t")


class TestBuildHttpClient:
    """The shared client carries the user agent and explicit timeouts."""

    @pytest.mark.asyncio()
    async def test_headers_and_timeout(self) -> None:
        """The shared client sends the user agent and has bounded timeouts."""
        async with build_http_client() as client:
            assert client.headers["User-Agent"] == USER_AGENT
            assert client.timeout.read == pytest.approx(15.0)
