"""Yahoo Finance chart API async client.

Fetches candle series for a symbol / interval / range and normalises the
chart payload into ``Candle`` objects.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from app.config import Config
from app.errors import MarketDataError
from app.market.models import Candle

logger = logging.getLogger("wavescan.market")

# Attempts per chart request, including the first
_MAX_ATTEMPTS = 3
_BACKOFF_SECONDS = 2.0  # doubled after each failed attempt
_MAX_BACKOFF_SECONDS = 30.0
# Rate limiting and gateway hiccups; everything else fails fast
_RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})

_USER_AGENT = "Mozilla/5.0 (compatible; wavescan/0.1)"


def _backoff_delay(attempt: int, retry_after: Optional[str] = None) -> float:
    """Seconds to wait after failed *attempt* (1-based).

    A numeric ``Retry-After`` header from a 429 takes precedence over the
    exponential schedule; both are capped at ``_MAX_BACKOFF_SECONDS``.
    """
    if retry_after and retry_after.strip().isdigit():
        return min(float(retry_after), _MAX_BACKOFF_SECONDS)
    return min(_BACKOFF_SECONDS * 2 ** (attempt - 1), _MAX_BACKOFF_SECONDS)


class YahooChartClient:
    """Async client wrapping the Yahoo Finance v8 chart endpoint."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self._base_url = config.market_data_url
        self._timeout = config.fetch_timeout_seconds
        self._headers = {
            "User-Agent": _USER_AGENT,
            "Accept": "application/json",
        }

    # ── Transport ────────────────────────────────────────────────────────

    async def _get_chart(self, url: str, params: dict) -> httpx.Response:
        """GET a chart URL over one connection, backing off between attempts.

        Raises ``httpx.HTTPStatusError`` for a non-retryable status or when
        the final attempt is still throttled, and the last
        ``httpx.TransportError`` when every attempt lost the connection.
        """
        async with httpx.AsyncClient() as client:
            attempt = 0
            while True:
                attempt += 1
                final = attempt == _MAX_ATTEMPTS
                try:
                    resp = await client.get(
                        url,
                        headers=self._headers,
                        params=params,
                        timeout=self._timeout,
                    )
                except httpx.TransportError as exc:
                    if final:
                        raise
                    reason, retry_after = type(exc).__name__, None
                else:
                    if final or resp.status_code not in _RETRYABLE_STATUS_CODES:
                        resp.raise_for_status()
                        return resp
                    reason = f"HTTP {resp.status_code}"
                    retry_after = resp.headers.get("Retry-After")

                delay = _backoff_delay(attempt, retry_after)
                logger.warning(
                    "Chart %s: %s (attempt %d of %d), backing off %.1fs",
                    url, reason, attempt, _MAX_ATTEMPTS, delay,
                )
                await asyncio.sleep(delay)

    # ── Candle data ──────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        symbol: str,
        interval: str,
        range: str,
    ) -> list[Candle]:
        """Fetch candlestick data for *symbol*.

        Args:
            symbol: Ticker, e.g. ``"AAPL"``.
            interval: Bar size, e.g. ``"15m"``, ``"1h"``, ``"1d"``.
            range: Look-back window, e.g. ``"5d"``, ``"1mo"``, ``"2y"``.

        Returns:
            List of ``Candle`` objects ordered oldest-first.  Empty when the
            provider has no data for the range.

        Raises:
            MarketDataError: on a non-success HTTP status or a malformed
                payload.
        """
        url = f"{self._base_url}/v8/finance/chart/{symbol}"
        params = {
            "interval": interval,
            "range": range,
            "includePrePost": "false",
        }

        try:
            resp = await self._get_chart(url, params)
        except httpx.HTTPStatusError as exc:
            raise MarketDataError(
                f"{symbol}: HTTP {exc.response.status_code} from chart endpoint"
            ) from exc
        except httpx.TransportError as exc:
            raise MarketDataError(f"{symbol}: transport error ({exc})") from exc

        try:
            payload = resp.json()
        except ValueError as exc:
            raise MarketDataError(f"{symbol}: response is not JSON") from exc

        return parse_chart_payload(symbol, payload)


def parse_chart_payload(symbol: str, payload: dict) -> list[Candle]:
    """Convert a chart JSON payload into candles.

    Bars without a close are dropped; a missing high or low falls back to
    the close and a missing volume to 0.
    """
    try:
        chart = payload["chart"]
        error = chart.get("error")
        results = chart.get("result")
        if error:
            description = error.get("description") or error.get("code") or "unknown"
            raise MarketDataError(f"{symbol}: {description}")
        if not results:
            return []

        result = results[0]
        timestamps = result.get("timestamp") or []
        if not timestamps:
            return []

        quote = result["indicators"]["quote"][0]
        closes = quote.get("close") or []
        highs = quote.get("high") or []
        lows = quote.get("low") or []
        volumes = quote.get("volume") or []

        candles: list[Candle] = []
        for i, ts in enumerate(timestamps):
            close = _at(closes, i)
            if close is None:
                continue
            high = _at(highs, i)
            low = _at(lows, i)
            volume = _at(volumes, i)
            candles.append(
                Candle(
                    timestamp=datetime.fromtimestamp(int(ts), tz=timezone.utc),
                    high=float(high if high is not None else close),
                    low=float(low if low is not None else close),
                    close=float(close),
                    volume=int(volume or 0),
                )
            )
    except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
        raise MarketDataError(f"{symbol}: malformed chart payload ({exc!r})") from exc

    return candles


def _at(values: list, i: int):
    return values[i] if i < len(values) else None
