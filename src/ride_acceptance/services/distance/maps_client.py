"""Async HTTP client for the Google Distance Matrix API."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Sequence

import httpx

from ...config import settings

# Distance Matrix limits: 25 origins, 25 destinations and 100 elements per request.
MAX_DIMENSION_PER_REQUEST = 25
MAX_ELEMENTS_PER_REQUEST = 100
# Top-level statuses that are retried.
RETRYABLE_STATUSES = {"OVER_QUERY_LIMIT", "UNKNOWN_ERROR"}

logger = logging.getLogger(__name__)

Grid = list[list[dict[str, Any]]]


class MapsServiceError(RuntimeError):
    """Raised when the Distance Matrix API returns a non-successful response."""

    def __init__(self, status: str, message: str | None = None) -> None:
        super().__init__(message or status)
        self.status = status


def _chunks(items: Sequence[str], size: int) -> list[tuple[int, list[str]]]:
    return [(start, list(items[start : start + size])) for start in range(0, len(items), size)]


def _failed_cell(status: str = "UNKNOWN_ERROR") -> dict[str, Any]:
    return {"status": status}


class DistanceMatrixClient:
    """Distance capability backed by the Google Distance Matrix API.

    ``matrix`` returns ``grid[origin_index][destination_index]`` cells shaped
    like the API's ``elements``: ``{"status", "distance": {"text", "value"},
    "duration": {"text", "value"}}``. Matrices larger than one request allows
    are split into chunks issued concurrently.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        max_parallel_requests: int | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_maps_api_key
        if not self.api_key:
            raise ValueError("Google Maps API key is not configured.")
        self.base_url = (base_url or settings.maps_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.maps_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.maps_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.maps_backoff_seconds
        self.max_parallel_requests = max_parallel_requests or settings.processing_batch_size
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=5.0),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _matrix_single_request(self, origins: Sequence[str], destinations: Sequence[str]) -> Grid:
        """Make one Distance Matrix request and return its element grid."""
        params = {
            "origins": "|".join(origins),
            "destinations": "|".join(destinations),
            "units": "imperial",
            "mode": "driving",
            "key": self.api_key,
        }
        url = f"{self.base_url}/distancematrix/json"

        attempt = 0
        while True:
            try:
                response = await self._client.get(url, params=params)
                response.raise_for_status()
                payload = response.json()
                status = payload.get("status")
                if status != "OK":
                    raise MapsServiceError(status or "UNKNOWN_ERROR", payload.get("error_message"))
                rows = payload.get("rows") or []
                return [list(row.get("elements") or []) for row in rows]
            except MapsServiceError as error:
                attempt += 1
                if error.status not in RETRYABLE_STATUSES or attempt > self.max_retries:
                    logger.error(f"Distance Matrix request failed: status={error.status}, message={error}")
                    raise
                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                logger.debug(f"Distance Matrix returned {error.status}, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                await asyncio.sleep(wait_time)
            except httpx.HTTPStatusError as error:
                attempt += 1
                if error.response.status_code < 500 or attempt > self.max_retries:
                    raise
                await asyncio.sleep(self.backoff_seconds * attempt)
            except httpx.TimeoutException as error:
                attempt += 1
                if attempt > self.max_retries:
                    logger.warning(f"Distance Matrix request timed out after {self.max_retries} retries: {error}")
                    raise
                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                logger.debug(f"Distance Matrix timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                await asyncio.sleep(wait_time)
            except httpx.TransportError as error:
                attempt += 1
                if attempt > self.max_retries:
                    raise
                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                logger.debug(f"Distance Matrix network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {error}")
                await asyncio.sleep(wait_time)

    async def matrix(
        self,
        origins: Sequence[str],
        destinations: Sequence[str],
        max_parallel_requests: int | None = None,
    ) -> Grid:
        """Get the distance/duration grid for every origin/destination combination.

        ``max_parallel_requests`` overrides the client-wide limit on concurrent chunk requests.
        """
        if not origins or not destinations:
            raise ValueError("At least one origin and one destination are required.")

        origin_size = min(MAX_DIMENSION_PER_REQUEST, len(origins))
        destination_size = max(1, min(MAX_DIMENSION_PER_REQUEST, MAX_ELEMENTS_PER_REQUEST // origin_size))

        # Fits in one request
        if len(origins) <= origin_size and len(destinations) <= destination_size:
            return await self._matrix_single_request(origins, destinations)

        parallel = max_parallel_requests or self.max_parallel_requests
        start_time = time.time()
        origin_chunks = _chunks(origins, origin_size)
        destination_chunks = _chunks(destinations, destination_size)
        total_requests = len(origin_chunks) * len(destination_chunks)
        logger.info(
            f"Chunking Distance Matrix request: {len(origins)}x{len(destinations)} elements "
            f"in {total_requests} requests (parallel: {parallel})"
        )

        grid: Grid = [[_failed_cell() for _ in destinations] for _ in origins]
        semaphore = asyncio.Semaphore(parallel)

        async def run_chunk(origin_start: int, origin_chunk: list[str], destination_start: int, destination_chunk: list[str]) -> bool:
            async with semaphore:
                try:
                    result = await self._matrix_single_request(origin_chunk, destination_chunk)
                except Exception as error:
                    logger.warning(
                        f"Failed to get Distance Matrix data for origins [{origin_start}:{origin_start + len(origin_chunk)}] "
                        f"-> destinations [{destination_start}:{destination_start + len(destination_chunk)}]: {error}"
                    )
                    return False
            for local_origin, row in enumerate(result[: len(origin_chunk)]):
                for local_destination, cell in enumerate(row[: len(destination_chunk)]):
                    grid[origin_start + local_origin][destination_start + local_destination] = cell
            return True

        outcomes = await asyncio.gather(
            *(
                run_chunk(origin_start, origin_chunk, destination_start, destination_chunk)
                for origin_start, origin_chunk in origin_chunks
                for destination_start, destination_chunk in destination_chunks
            )
        )

        failed_chunks = outcomes.count(False)
        elapsed = time.time() - start_time
        if failed_chunks == total_requests:
            raise MapsServiceError("UNKNOWN_ERROR", f"All {total_requests} Distance Matrix chunk requests failed.")
        if failed_chunks:
            logger.warning(
                f"Partial failure: {failed_chunks}/{total_requests} Distance Matrix chunk requests failed. "
                f"Elapsed time: {elapsed:.2f}s"
            )
        else:
            logger.info(f"Completed Distance Matrix request: {total_requests} chunk requests in {elapsed:.2f}s")
        return grid


async def check_health(client: DistanceMatrixClient | None) -> bool:
    """Check the Distance Matrix API by resolving a minimal pair."""
    if client is None:
        return False
    try:
        grid = await client.matrix(["Chicago, IL"], ["Evanston, IL"])
        return bool(grid and grid[0] and grid[0][0].get("status") == "OK")
    except (httpx.HTTPError, MapsServiceError):
        return False
