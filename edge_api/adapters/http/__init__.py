"""Outbound HTTP adapters."""

from edge_api.adapters.http.fetcher import FetchAttempt, TimeoutFetcher

__all__ = ["FetchAttempt", "TimeoutFetcher"]
