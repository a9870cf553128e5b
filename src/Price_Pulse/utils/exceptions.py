"""Custom exception hierarchy for the Price Pulse application.

All domain-specific exceptions inherit from DataFetchError, which carries
contextual information about which provider failed and for which asset.
Providers raise these internally; the ``attempt()`` wrappers in
``Price_Pulse.services`` catch them and turn them into "try the next provider".
"""


class DataFetchError(Exception):
    """Base exception for all data-fetching failures.

    Attributes:
        asset: The asset symbol or address involved in the failure.
        source: The provider that failed (e.g., "coinbase", "filfox").
        http_status: The HTTP status code, if the failure was HTTP-related.
    """

    def __init__(
        self,
        message: str,
        *,
        asset: str,
        source: str,
        http_status: int | None = None,
    ) -> None:
        self.asset = asset
        self.source = source
        self.http_status = http_status
        super().__init__(message)


class DataSourceUnavailableError(DataFetchError):
    """Raised when a provider is unreachable or returns a non-success status."""


class MalformedPayloadError(DataFetchError):
    """Raised when a provider response does not contain a usable value."""
