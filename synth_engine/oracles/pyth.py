"""Pyth Network price oracle adapter."""
from __future__ import annotations

import logging
import ssl
import time
from collections.abc import Callable

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import PriceUnavailable, StalePrice
from ..models import OracleQuote

logger = logging.getLogger(__name__)


class PythOracle:
    """Serve cached Pyth Network quotes to the engine.

    ``refresh`` pulls the latest prices from Hermes; ``latest_price`` only
    reads the cache, so the engine never waits on the network.
    """

    def __init__(
        self,
        config: PythConfig,
        feeds: dict[str, str],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.hermes_url = config.hermes_url
        self.max_price_age_seconds = config.max_price_age_seconds
        self.price_feeds = dict(feeds)
        self._clock = clock
        self._quotes: dict[str, OracleQuote] = {}

    @property
    def quotes(self) -> dict[str, OracleQuote]:
        return dict(self._quotes)

    def latest_price(self, asset: str) -> OracleQuote:
        quote = self._quotes.get(asset)
        if quote is None:
            raise PriceUnavailable(f"No Pyth quote cached for {asset}")

        if self.max_price_age_seconds > 0:
            age = self._clock() - quote.publish_time
            if age > self.max_price_age_seconds:
                raise StalePrice(
                    f"Pyth quote for {asset} is {age:.0f}s old "
                    f"(limit {self.max_price_age_seconds}s)"
                )
        return quote

    async def refresh(self, symbols: list[str] | None = None) -> dict[str, OracleQuote]:
        """Fetch current prices from Pyth Network into the cache.

        Args:
            symbols: Optional list of symbols to fetch. If None, fetches all
                     configured feeds.
        """
        quotes: dict[str, OracleQuote] = {}

        feeds = self.price_feeds
        if symbols is not None:
            feeds = {k: v for k, v in self.price_feeds.items() if k in symbols}

        feed_ids = list(set(feeds.values()))
        if not feed_ids:
            return quotes

        query_params = "&".join([f"ids[]={fid}" for fid in feed_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return quotes

                    data = await response.json()
                    parsed = data.get("parsed", [])

                    # Create reverse mapping from feed ID to asset names
                    id_to_assets: dict[str, list[str]] = {}
                    for asset, feed_id in feeds.items():
                        id_to_assets.setdefault(feed_id, []).append(asset)

                    for item in parsed:
                        feed_id = item.get("id")
                        if feed_id not in id_to_assets:
                            continue

                        price_data = item.get("price", {})
                        quote = OracleQuote(
                            price=int(price_data.get("price", 0)),
                            decimals=-int(price_data.get("expo", 0)),
                            publish_time=int(price_data.get("publish_time", 0)),
                        )
                        for asset in id_to_assets[feed_id]:
                            quotes[asset] = quote

        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)

        self._quotes.update(quotes)
        for asset, quote in sorted(quotes.items()):
            logger.info(
                "  %s: %d (10^-%d) at %d",
                asset, quote.price, quote.decimals, quote.publish_time,
            )
        return quotes
