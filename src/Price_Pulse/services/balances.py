"""On-chain balance lookup with a sticky cache.

For each configured address the refresher tries the balance providers in
order (Lotus JSON-RPC endpoints first, then the Filfox explorer), takes the
first positive balance, and sums across addresses. A round that produces no
positive total keeps the previous cached value instead of reporting zero.

Balances arrive in the smallest denomination (attoFIL, 18 decimals) as
arbitrarily long integer strings, so conversion is done by string slicing
into an exact ``Decimal`` rather than by float division.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import Final
from urllib.parse import quote

import httpx

from Price_Pulse.services._helpers import attempt, dig, request_json
from Price_Pulse.settings import DashboardSettings
from Price_Pulse.utils.exceptions import MalformedPayloadError

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS: Final[int] = 18
LOTUS_BALANCE_METHOD: Final[str] = "Filecoin.WalletBalance"

_DIGITS = re.compile(r"^\d+$")


def to_whole_units(raw: str, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """Convert a smallest-denomination integer string to whole units.

    ``"1500000000000000000"`` -> ``Decimal("1.5")`` and ``"5"`` ->
    ``Decimal("0.000000000000000005")`` with 18 decimals. Exact for any length.

    Raises:
        ValueError: If *raw* is not a string of digits.
    """
    text = str(raw).strip()
    if text and not _DIGITS.match(text):
        msg = f"Not an integer balance string: {raw!r}"
        raise ValueError(msg)

    digits = text.lstrip("0")
    if not digits:
        return Decimal(0)
    if decimals == 0:
        return Decimal(digits)
    if len(digits) <= decimals:
        return Decimal("0." + digits.zfill(decimals))
    return Decimal(digits[:-decimals] + "." + digits[-decimals:])


def parse_explorer_balance(value: object, decimals: int = DEFAULT_DECIMALS) -> Decimal | None:
    """Interpret an explorer balance field.

    Pure digits are smallest-denomination units; ``"12.5 FIL"`` is already in
    whole units; anything else is tried as a plain decimal.
    """
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if _DIGITS.match(text):
        return to_whole_units(text, decimals)
    if text.upper().endswith("FIL"):
        text = text[: -len("FIL")].strip()
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


class BalanceProvider(ABC):
    """A keyed balance lookup: a positive whole-unit balance or nothing."""

    name: str = "balance"

    def __init__(self, client: httpx.AsyncClient, *, decimals: int = DEFAULT_DECIMALS) -> None:
        self._client = client
        self._decimals = decimals

    async def attempt(self, address: str) -> Decimal | None:
        """Look up *address*, returning None on failure or a non-positive balance."""
        balance = await attempt(
            lambda: self._fetch_balance(address),
            label=f"{self.name} balance({address})",
        )
        if balance is None or balance <= 0:
            return None
        return balance

    @abstractmethod
    async def _fetch_balance(self, address: str) -> Decimal:
        """Fetch the balance in whole units. Raises a ``DataFetchError`` on failure."""


class LotusRpcBalanceProvider(BalanceProvider):
    """``Filecoin.WalletBalance`` over a Lotus-compatible JSON-RPC endpoint."""

    name = "lotus-rpc"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        url: str,
        decimals: int = DEFAULT_DECIMALS,
    ) -> None:
        super().__init__(client, decimals=decimals)
        self._url = url

    async def _fetch_balance(self, address: str) -> Decimal:
        payload = {
            "jsonrpc": "2.0",
            "method": LOTUS_BALANCE_METHOD,
            "params": [address],
            "id": 1,
        }
        body = await request_json(
            self._client,
            "POST",
            self._url,
            asset=address,
            source=self.name,
            json=payload,
        )
        result = dig(body, "result")
        if not result:
            msg = f"{self.name} returned no result: {dig(body, 'error')!r}"
            raise MalformedPayloadError(msg, asset=address, source=self.name)
        try:
            return to_whole_units(str(result), self._decimals)
        except ValueError as exc:
            raise MalformedPayloadError(str(exc), asset=address, source=self.name) from exc


class FilfoxBalanceProvider(BalanceProvider):
    """Filfox explorer address endpoint."""

    name = "filfox"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        url: str,
        decimals: int = DEFAULT_DECIMALS,
    ) -> None:
        super().__init__(client, decimals=decimals)
        self._url = url

    async def _fetch_balance(self, address: str) -> Decimal:
        body = await request_json(
            self._client,
            "GET",
            self._url.format(address=quote(address, safe="")),
            asset=address,
            source=self.name,
        )
        raw = (
            dig(body, "balance")
            or dig(body, "available")
            or dig(body, "balanceString")
        )
        balance = parse_explorer_balance(raw, self._decimals)
        if balance is None:
            msg = f"{self.name} response has no usable balance: {raw!r}"
            raise MalformedPayloadError(msg, asset=address, source=self.name)
        return balance


def build_balance_providers(
    settings: DashboardSettings,
    client: httpx.AsyncClient,
) -> list[BalanceProvider]:
    """Each configured RPC endpoint in order, then the explorer."""
    decimals = settings.asset.decimals
    providers: list[BalanceProvider] = [
        LotusRpcBalanceProvider(client, url=url, decimals=decimals)
        for url in settings.endpoints.lotus_rpc
    ]
    providers.append(
        FilfoxBalanceProvider(client, url=settings.endpoints.filfox_address, decimals=decimals)
    )
    return providers


class BalanceRefresher:
    """Sum on-chain balances across addresses, keeping the last good total.

    Usage::

        refresher = BalanceRefresher(settings.addresses, build_balance_providers(settings, client))
        quantity = await refresher.refresh()  # None until the first success
    """

    def __init__(
        self,
        addresses: Sequence[str],
        providers: Sequence[BalanceProvider],
        *,
        enabled: bool = True,
        cached: float | None = None,
    ) -> None:
        self._addresses = [a.strip() for a in addresses if a and a.strip()]
        self._providers = list(providers)
        self._enabled = enabled
        self._cached = cached

        logger.info(
            "BalanceRefresher initialized: enabled=%s addresses=%d providers=%d",
            enabled,
            len(self._addresses),
            len(self._providers),
        )

    @property
    def addresses(self) -> list[str]:
        return list(self._addresses)

    @property
    def cached_quantity(self) -> float | None:
        """Last positive total, or None before the first successful refresh."""
        return self._cached

    async def lookup(self, address: str) -> Decimal | None:
        """First positive balance for *address* across the providers."""
        for provider in self._providers:
            balance = await provider.attempt(address)
            if balance is not None:
                logger.debug("Balance for %s from %s: %s", address, provider.name, balance)
                return balance
        logger.warning("No balance provider answered for %s", address)
        return None

    async def lookup_all(self) -> dict[str, Decimal | None]:
        """Per-address balances for this round (None where every provider failed)."""
        return {address: await self.lookup(address) for address in self._addresses}

    async def refresh(self) -> float | None:
        """Refresh the total, falling back to the cached value.

        Returns:
            The new positive total, or the previous cached total when this
            round produced nothing positive. None when disabled or when no
            round has ever succeeded.
        """
        if not self._enabled or not self._addresses:
            return None

        balances = await self.lookup_all()
        total = sum((b for b in balances.values() if b is not None), Decimal(0))
        if total <= 0:
            logger.warning(
                "Balance refresh produced no positive total; keeping cached %s",
                self._cached,
            )
            return self._cached

        self._cached = float(total)
        logger.info("On-chain quantity refreshed: %s", total)
        return self._cached
