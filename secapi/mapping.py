"""Entity mapping endpoints: resolve tickers, CIKs, CUSIPs and names."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from secapi.transport import GovernedTransport, json_body


class Mapping:
    """Look up company details by identifier.

    Usage:
        client.mapping.ticker("AAPL")
        client.mapping.cik("320193")
    """

    def __init__(self, transport: GovernedTransport) -> None:
        self._transport = transport

    def ticker(self, ticker: str) -> Any:
        return self._lookup("ticker", ticker)

    def cik(self, cik: str | int) -> Any:
        return self._lookup("cik", cik)

    def cusip(self, cusip: str) -> Any:
        return self._lookup("cusip", cusip)

    def name(self, name: str) -> Any:
        return self._lookup("name", name)

    def _lookup(self, kind: str, value: str | int) -> Any:
        response = self._transport.get(f"/mapping/{kind}/{quote(str(value), safe='')}")
        return json_body(response)
