"""
Adapter: CoinGecko price oracle.

Implements PriceOraclePort against the CoinGecko simple price API.

Prices are cached per coin id for a short TTL. A batch lookup only asks
CoinGecko for the ids that are not cached, in a single request. Pairs
without a mapping and failed lookups are simply absent from the result.
"""

import logging
import threading
import time
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Optional

import httpx

from signalmarket.domain.marketplace.ports import PriceOraclePort

logger = logging.getLogger(__name__)

COINGECKO_IDS: dict[str, str] = {
    "BTC/USDT": "bitcoin",
    "ETH/USDT": "ethereum",
    "SOL/USDT": "solana",
    "XRP/USDT": "ripple",
    "BNB/USDT": "binancecoin",
    "ADA/USDT": "cardano",
    "DOGE/USDT": "dogecoin",
    "DOT/USDT": "polkadot",
    "MATIC/USDT": "matic-network",
    "TRX/USDT": "tron",
    "AVAX/USDT": "avalanche-2",
    "LINK/USDT": "chainlink",
    "SHIB/USDT": "shiba-inu",
    "LTC/USDT": "litecoin",
    "BCH/USDT": "bitcoin-cash",
    "UNI/USDT": "uniswap",
    "NEAR/USDT": "near",
    "APT/USDT": "aptos",
    "ARB/USDT": "arbitrum",
    "OP/USDT": "optimism",
}


def coin_id_for(pair: str) -> Optional[str]:
    """Return the CoinGecko id for a pair such as "btc/usdt", or None."""
    return COINGECKO_IDS.get((pair or "").strip().upper())


class CoinGeckoPriceOracle(PriceOraclePort):
    """CoinGecko-backed price oracle with a per-coin TTL cache.

    The cache is shared by every request thread and guarded by a lock.
    The lock is never held across the HTTP call.
    """

    def __init__(
        self,
        base_url: str = "https://api.coingecko.com/api/v3",
        ttl_seconds: float = 60.0,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the oracle.

        Args:
            base_url: CoinGecko API root.
            ttl_seconds: How long a fetched price is served from cache.
            timeout: Upstream request timeout in seconds.
            client: Optional preconfigured httpx client (used by tests).
            clock: Monotonic clock returning seconds.
        """
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self._ttl = ttl_seconds
        self._clock = clock
        self._cache: dict[str, tuple[Decimal, float]] = {}
        self._lock = threading.Lock()

    def get_price(self, pair: str) -> Optional[Decimal]:
        return self.get_many_prices([pair]).get(pair)

    def get_many_prices(self, pairs: Iterable[str]) -> dict[str, Decimal]:
        """Return prices for every pair that could be priced.

        Args:
            pairs: Instrument pairs, e.g. ["BTC/USDT", "ETH/USDT"].

        Returns:
            Mapping of the requested pair strings to prices.
        """
        ids_by_pair = {}
        for pair in set(pairs):
            coin_id = coin_id_for(pair)
            if coin_id is None:
                logger.debug("No price source for pair %s", pair)
                continue
            ids_by_pair[pair] = coin_id
        if not ids_by_pair:
            return {}

        now = self._clock()
        cached: dict[str, Decimal] = {}
        with self._lock:
            for coin_id in set(ids_by_pair.values()):
                entry = self._cache.get(coin_id)
                if entry is not None and now - entry[1] < self._ttl:
                    cached[coin_id] = entry[0]

        missing = sorted(set(ids_by_pair.values()) - set(cached))
        if missing:
            fetched = self._fetch(missing)
            fetched_at = self._clock()
            with self._lock:
                for coin_id, price in fetched.items():
                    self._cache[coin_id] = (price, fetched_at)
            cached.update(fetched)

        return {
            pair: cached[coin_id]
            for pair, coin_id in ids_by_pair.items()
            if coin_id in cached
        }

    def close(self) -> None:
        self._client.close()

    def _fetch(self, coin_ids: list[str]) -> dict[str, Decimal]:
        """One upstream call for ``coin_ids``. Failures yield an empty dict."""
        try:
            response = self._client.get(
                "/simple/price",
                params={"ids": ",".join(coin_ids), "vs_currencies": "usd"},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("CoinGecko lookup failed for %s: %s", coin_ids, exc)
            return {}

        prices: dict[str, Decimal] = {}
        for coin_id in coin_ids:
            raw = (payload.get(coin_id) or {}).get("usd")
            if raw is None:
                continue
            try:
                price = Decimal(str(raw))
            except InvalidOperation:
                logger.warning("Unusable price for %s: %r", coin_id, raw)
                continue
            prices[coin_id] = price
        return prices
