"""Throttled outbound HTTP."""

from jsrecon.fetch.throttle import NOT_FOUND, FetchResponse, ThrottledFetcher

__all__ = ["NOT_FOUND", "FetchResponse", "ThrottledFetcher"]
