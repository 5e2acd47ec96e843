"""
SGP customer API client.

Fetches every customer matching a filter set from the paginated
``/api/ura/clientes/`` endpoint. Each page is a POST carrying the tenant
credentials, the filters and limit/offset; the response body holds the
page under ``clientes``. Transient network failures are retried with
exponential backoff; HTTP and payload errors fail immediately with a
classified exception.

Dependencies: httpx, tenacity, customer_sync.configs, customer_sync.core
System role: External Fetcher for imports and inline sync
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

import httpx
from pydantic import BaseModel, Field
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from customer_sync.configs.upstream import UpstreamSettings
from customer_sync.core.exceptions import (
    UpstreamAuthError,
    UpstreamError,
    UpstreamNotFoundError,
    UpstreamUnavailableError,
)
from customer_sync.core.progress import NullProgressSink, ProgressEvent, ProgressSink

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)


class UpstreamAuth(BaseModel):
    """Tenant credentials sent in every request body."""

    token: str
    app: str


class FetchResult(BaseModel):
    """Records returned by fetch_all plus request accounting."""

    records: list[dict[str, Any]] = Field(default_factory=list)
    requests: int = 0
    retries: int = 0


def full_filters() -> dict[str, Any]:
    """Filters of a full import: customers with activity in the last year."""
    return {
        "apenas_ativos": True,
        "dias_atividade": 365,
        "data_cadastro_inicio": "",
        "data_cadastro_fim": "",
    }


def incremental_filters(
    hours: int,
    active_only: bool = True,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Filters of an incremental sync: records changed within the last ``hours``.

    Args:
        hours: Trailing window size
        active_only: Restrict to active contracts
        now: Reference time (defaults to current UTC time)

    Returns:
        dict: Upstream filter parameters
    """
    since = (now or datetime.now(timezone.utc)) - timedelta(hours=hours)
    filters: dict[str, Any] = {"data_alteracao_inicio": since.date().isoformat()}
    if active_only:
        filters["contrato_status"] = 1
    return filters


class SgpClient:
    """
    Paginated client for the SGP customer endpoint.

    A shared httpx.AsyncClient may be injected (tests use a MockTransport);
    otherwise one is opened per fetch_all call.
    """

    def __init__(
        self,
        settings: UpstreamSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or UpstreamSettings()
        self._http_client = http_client
        self._sleep = sleep

    def endpoint_for(self, subdomain: str) -> str:
        return self.settings.base_url_template.format(subdomain=subdomain.strip())

    async def fetch_all(
        self,
        endpoint: str,
        auth: UpstreamAuth,
        filters: dict[str, Any] | None = None,
        progress_sink: ProgressSink | None = None,
        page_size: int | None = None,
        max_records: int | None = None,
        max_requests: int | None = None,
        timeout_seconds: float | None = None,
    ) -> FetchResult:
        """
        Fetch all pages of customers matching filters.

        Pagination starts at offset 0 and advances by page_size after each
        successful page. It stops on an empty or missing page, on a page
        shorter than page_size, or when max_records / max_requests is reached.

        Args:
            endpoint: Full endpoint URL
            auth: Tenant credentials
            filters: Upstream filter parameters merged into the body
            progress_sink: Receiver of fetch progress events
            page_size: Records per page (defaults to settings)
            max_records: Stop once this many records were fetched
            max_requests: Stop after this many page requests
            timeout_seconds: Per-request timeout (defaults to settings)

        Returns:
            FetchResult with the records in upstream order

        Raises:
            UpstreamAuthError: 401/403
            UpstreamNotFoundError: 404
            UpstreamUnavailableError: Transient errors persisted after all attempts
            UpstreamError: Other non-2xx status or malformed body
        """
        sink = progress_sink or NullProgressSink()
        limit = page_size or self.settings.page_size
        timeout = timeout_seconds or self.settings.timeout_seconds
        result = FetchResult()

        if self._http_client is not None:
            await self._paginate(
                self._http_client, endpoint, auth, filters or {}, sink,
                limit, timeout, max_records, max_requests, result,
            )
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                await self._paginate(
                    client, endpoint, auth, filters or {}, sink,
                    limit, timeout, max_records, max_requests, result,
                )

        logger.info(
            "Upstream fetch finished",
            extra={
                "records": len(result.records),
                "requests": result.requests,
                "retries": result.retries,
            },
        )
        return result

    async def _paginate(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        auth: UpstreamAuth,
        filters: dict[str, Any],
        sink: ProgressSink,
        limit: int,
        timeout: float,
        max_records: int | None,
        max_requests: int | None,
        result: FetchResult,
    ) -> None:
        offset = 0
        while True:
            page_number = result.requests + 1
            await sink.emit(
                ProgressEvent(
                    phase="fetching",
                    message=f"Fetching page {page_number} (offset {offset})...",
                    fetched=len(result.records),
                    requests=result.requests,
                )
            )

            body = {
                **filters,
                "token": auth.token,
                "app": auth.app,
                "omitir_contratos": False,
                "limit": limit,
                "offset": offset,
            }
            page = await self._fetch_page(client, endpoint, body, timeout, result)
            result.requests += 1

            if max_records is not None:
                page = page[: max(max_records - len(result.records), 0)]
            result.records.extend(page)

            await sink.emit(
                ProgressEvent(
                    phase="fetching",
                    message=f"{len(result.records)} customers fetched in {result.requests} requests",
                    fetched=len(result.records),
                    requests=result.requests,
                )
            )

            if not page or len(page) < limit:
                return
            if max_records is not None and len(result.records) >= max_records:
                return
            if max_requests is not None and result.requests >= max_requests:
                return

            offset += limit
            if self.settings.page_delay_seconds > 0:
                await self._sleep(self.settings.page_delay_seconds)

    async def _fetch_page(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        body: dict[str, Any],
        timeout: float,
        result: FetchResult,
    ) -> list[dict[str, Any]]:
        max_attempts = self.settings.max_attempts

        def before_sleep(retry_state: RetryCallState) -> None:
            result.retries += 1
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "Upstream request failed, retrying",
                extra={
                    "attempt_number": retry_state.attempt_number,
                    "max_attempts": max_attempts,
                    "offset": body.get("offset"),
                    "error_type": type(exc).__name__ if exc else None,
                    "wait_seconds": retry_state.next_action.sleep if retry_state.next_action else None,
                },
            )

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=self.settings.backoff_multiplier, max=60),
            sleep=self._sleep,
            before_sleep=before_sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    response = await client.post(endpoint, json=body, timeout=timeout)
        except httpx.TimeoutException as e:
            raise UpstreamUnavailableError(
                f"Upstream API did not respond within {timeout:g}s "
                f"(offset {body.get('offset')}, {max_attempts} attempts)",
                attempts=max_attempts,
            ) from e
        except TRANSIENT_ERRORS as e:
            raise UpstreamUnavailableError(
                f"Could not connect to the upstream API ({type(e).__name__}) "
                f"after {max_attempts} attempts",
                attempts=max_attempts,
            ) from e

        return self._parse_page(response)

    def _parse_page(self, response: httpx.Response) -> list[dict[str, Any]]:
        status = response.status_code
        if status in (401, 403):
            raise UpstreamAuthError(
                "Upstream API rejected the credentials, check token and app name",
                status_code=status,
            )
        if status == 404:
            raise UpstreamNotFoundError(
                "Upstream API endpoint not found, check the subdomain",
                status_code=status,
            )
        if not response.is_success:
            raise UpstreamError(
                f"Upstream API returned HTTP {status} {response.reason_phrase}".rstrip(),
                status_code=status,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError("Upstream API returned a body that is not JSON", status_code=status) from e

        if not isinstance(payload, dict):
            raise UpstreamError("Upstream API returned an unexpected payload", status_code=status)

        page = payload.get("clientes")
        if page is None:
            return []
        if not isinstance(page, list):
            raise UpstreamError("Upstream API returned 'clientes' that is not a list", status_code=status)
        if not all(isinstance(record, dict) for record in page):
            raise UpstreamError("Upstream API returned a malformed customer entry", status_code=status)
        return page
