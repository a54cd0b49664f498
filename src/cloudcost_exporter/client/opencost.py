"""
HTTP client for the OpenCost cloudCost API and the Frankfurter exchange-rate API.

Cost fetches are retried with exponential backoff and honour a caller
supplied deadline and cancel event. Exchange-rate fetches and health pings
are single requests.
"""

import logging
import threading
import time
from typing import Any

import requests
from pydantic import BaseModel, ValidationError

from ..models import CloudCostResponse, ExchangeRateResponse
from .errors import (
    DecodeError,
    FetchCancelledError,
    FetchError,
    RetriesExhaustedError,
    TransportError,
    UpstreamStatusError,
)

logger = logging.getLogger(__name__)

DEFAULT_EXCHANGE_RATE_URL = "https://api.frankfurter.dev/v1/latest"

# Response bodies are truncated to this many characters in debug logs
BODY_PREVIEW_LIMIT = 500


def _body_preview(text: str) -> str:
    if len(text) > BODY_PREVIEW_LIMIT:
        return text[:BODY_PREVIEW_LIMIT] + "... (truncated)"
    return text


class OpenCostClient:
    """Client for the OpenCost cloudCost API."""

    def __init__(
        self,
        base_url: str,
        window: str = "1d",
        aggregate: str = "service,category",
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        exchange_rate_url: str = DEFAULT_EXCHANGE_RATE_URL,
        session: requests.Session | None = None,
    ):
        """
        Initialize the OpenCost client.

        Args:
            base_url: OpenCost service URL, e.g. http://opencost.opencost:9003
            window: Time window for cost queries (OpenCost window syntax)
            aggregate: Aggregation dimensions (not sent upstream at the moment)
            timeout: Per-request HTTP timeout in seconds
            max_retries: Retries after the first failed cost fetch
            backoff_base: Delay before the first retry; doubled on each retry
            exchange_rate_url: Endpoint serving the latest exchange rates
            session: Optional preconfigured requests session
        """
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")

        self.base_url = base_url.rstrip("/")
        self.window = window
        self.aggregate = aggregate
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.exchange_rate_url = exchange_rate_url
        self.session = session or requests.Session()

    def fetch_cloud_costs(
        self,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> CloudCostResponse:
        """
        Fetch cloud cost data from the OpenCost API with retry support.

        Args:
            timeout: Overall deadline in seconds covering all attempts and backoff
            cancel_event: Event that aborts the fetch when set

        Returns:
            Parsed cloud cost snapshot

        Raises:
            FetchCancelledError: If the deadline passed or the fetch was cancelled
            RetriesExhaustedError: If every attempt failed
        """
        url = f"{self.base_url}/cloudCost"
        params = {"window": self.window}
        deadline = None if timeout is None else time.monotonic() + timeout

        last_error: FetchError | None = None
        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                backoff = self.backoff_base * (2 ** (attempt - 1))
                logger.warning(
                    f"Retrying OpenCost API request (attempt {attempt}/{self.max_retries}, "
                    f"backoff {backoff:.1f}s): {last_error}"
                )
                self._wait(backoff, deadline, cancel_event)

            self._ensure_not_cancelled(deadline, cancel_event)

            try:
                return self._get_json(
                    url, CloudCostResponse, params=params, timeout=self._request_timeout(deadline)
                )
            except (TransportError, UpstreamStatusError, DecodeError) as e:
                last_error = e

            # A cancelled caller does not get another attempt
            if self._is_cancelled(deadline, cancel_event):
                raise self._cancelled_error(deadline, cancel_event) from last_error

        raise RetriesExhaustedError(self.max_retries, last_error) from last_error

    def ping(self, timeout: float = 5.0) -> None:
        """
        Check that the OpenCost API is reachable.

        Raises:
            TransportError: If the request could not be completed
            UpstreamStatusError: If the health endpoint did not return 200
        """
        response = self._get(f"{self.base_url}/healthz", timeout=timeout)
        if response.status_code != 200:
            raise UpstreamStatusError(
                f"unhealthy: status {response.status_code}", status_code=response.status_code
            )

    def fetch_exchange_rates(
        self, base: str, symbols: list[str], timeout: float = 10.0
    ) -> ExchangeRateResponse:
        """
        Fetch the latest exchange rates from the Frankfurter API.

        Args:
            base: Base currency code, e.g. USD
            symbols: Target currency codes; omitted from the query when empty
            timeout: Request timeout in seconds

        Returns:
            Exchange rates keyed by target currency
        """
        params = {"base": base}
        if symbols:
            params["symbols"] = ",".join(symbols)

        result = self._get_json(
            self.exchange_rate_url, ExchangeRateResponse, params=params, timeout=timeout
        )
        logger.debug(f"Parsed exchange rates: base={result.base} date={result.date} rates={result.rates}")
        return result

    def close(self) -> None:
        self.session.close()

    def _get(self, url: str, params: dict[str, Any] | None = None, timeout: float | None = None):
        """Perform a GET request, mapping requests failures to TransportError."""
        logger.debug(f"Sending HTTP request: GET {url} params={params}")
        try:
            response = self.session.get(
                url,
                params=params,
                headers={"Accept": "application/json"},
                timeout=timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.debug(f"HTTP request failed: GET {url}: {e}")
            raise TransportError(f"do request: {e}") from e

        # Body previews are only built at debug level
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Received HTTP response: GET {url} status={response.status_code} "
                f"body_preview={_body_preview(response.text)!r}"
            )
        return response

    def _get_json(
        self,
        url: str,
        model: type[BaseModel],
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ):
        response = self._get(url, params=params, timeout=timeout)

        if response.status_code != 200:
            raise UpstreamStatusError(
                f"unexpected status {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return model.model_validate_json(response.content)
        except ValidationError as e:
            raise DecodeError(f"decode response: {e}") from e

    def _request_timeout(self, deadline: float | None) -> float:
        if deadline is None:
            return self.timeout
        remaining = deadline - time.monotonic()
        return max(min(self.timeout, remaining), 0.001)

    def _wait(
        self, seconds: float, deadline: float | None, cancel_event: threading.Event | None
    ) -> None:
        """Sleep for a backoff interval, waking early on cancellation or deadline."""
        event = cancel_event or threading.Event()
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= seconds:
                # The deadline passes before the backoff ends
                event.wait(max(remaining, 0.0))
                raise self._cancelled_error(deadline, cancel_event)
        event.wait(seconds)
        self._ensure_not_cancelled(deadline, cancel_event)

    @staticmethod
    def _is_cancelled(deadline: float | None, cancel_event: threading.Event | None) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline

    @staticmethod
    def _cancelled_error(
        deadline: float | None, cancel_event: threading.Event | None
    ) -> FetchCancelledError:
        if cancel_event is not None and cancel_event.is_set():
            return FetchCancelledError("fetch cancelled")
        return FetchCancelledError("deadline exceeded")

    def _ensure_not_cancelled(
        self, deadline: float | None, cancel_event: threading.Event | None
    ) -> None:
        if self._is_cancelled(deadline, cancel_event):
            raise self._cancelled_error(deadline, cancel_event)
