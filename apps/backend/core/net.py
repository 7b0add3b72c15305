"""
Backoff Fetch: HTTP requests with retries, exponential backoff and per-attempt deadlines.

with_backoff() is the generic retry wrapper (tenacity) around any single-attempt
coroutine; backoff_fetch() is one httpx request wrapped with it.
"""
import time
import errno
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from core.errors import FetchTimeoutError, HTTPStatusError, TransientNetworkError

logger = logging.getLogger(__name__)

RETRYABLE_CODES = frozenset({'ECONNRESET', 'ETIMEDOUT', 'ECONNREFUSED'})
RESPONSE_TYPES = ('json', 'text', 'html')


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration. Delays and timeout are in seconds."""
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    timeout: float = 30.0
    jitter: float = 1.0

    def backoff(self, attempt: int) -> float:
        """Delay before retry number `attempt` (0-based), without jitter."""
        return compute_backoff(attempt, self)


DEFAULT_POLICY = RetryPolicy()


def compute_backoff(attempt: int, policy: RetryPolicy) -> float:
    return min(policy.initial_delay * (2 ** attempt), policy.max_delay)


def is_retryable_error(error: BaseException) -> bool:
    """Network failures, 5xx responses and a few socket error codes are retryable."""
    if isinstance(error, FetchTimeoutError):
        return False
    if isinstance(error, TransientNetworkError):
        return True
    if isinstance(error, HTTPStatusError) and error.status is not None and error.status >= 500:
        logger.debug(f"[net] {error.status} is a server error, retrying")
        return True
    code = getattr(error, 'code', None)
    if code and code in RETRYABLE_CODES:
        return True
    return False


def default_wait(policy: RetryPolicy):
    """Exponential backoff capped at max_delay, plus up to `jitter` seconds of random delay."""
    return wait_exponential(multiplier=policy.initial_delay, max=policy.max_delay) \
        + wait_random(0, policy.jitter)


def _log_retry(policy: RetryPolicy):
    def before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"[net] Retry attempt {retry_state.attempt_number}/{policy.max_retries} "
            f"after {delay * 1000:.0f}ms: {error}"
        )
    return before_sleep


async def with_backoff(
    operation: Callable[[], Awaitable[Any]],
    policy: RetryPolicy = DEFAULT_POLICY,
    is_retryable: Callable[[BaseException], bool] = is_retryable_error,
    wait=None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Any:
    """
    Run `operation` until it succeeds, a non-retryable error occurs, or retries run out.

    Args:
        operation: Zero-argument coroutine function performing one attempt
        policy: Retry limits and delays
        is_retryable: Predicate deciding whether an exception earns another attempt
        wait: tenacity wait strategy (defaults to exponential + jitter from policy)
        sleep: Async sleep used between attempts

    Returns:
        Whatever `operation` returns

    Raises:
        The last exception raised by `operation`, unchanged.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_retries + 1),
        wait=wait if wait is not None else default_wait(policy),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry(policy),
        sleep=sleep,
        reraise=True,
    )
    return await retrying(operation)


def _error_code(error: BaseException) -> Optional[str]:
    """Find an errno name (ECONNRESET, ...) anywhere in the exception chain."""
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        err_no = getattr(current, 'errno', None)
        if isinstance(err_no, int) and err_no in errno.errorcode:
            return errno.errorcode[err_no]
        current = current.__cause__ or current.__context__
    return None


def decode_body(response: httpx.Response, response_type: Optional[str] = None) -> Any:
    """Decode by explicit response_type, else by Content-Type. Bad JSON falls back to text."""
    content_type = response.headers.get('content-type', '')

    if response_type in ('text', 'html'):
        return response.text
    if 'text/plain' in content_type or 'text/html' in content_type:
        return response.text
    if response_type == 'json' or 'application/json' in content_type:
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"[net] Failed to parse JSON response, returning text instead: {e}")
            return response.text
    return response.text


async def _single_request(
    client: httpx.AsyncClient,
    url: str,
    method: str,
    headers: Optional[Dict[str, str]],
    json: Optional[Any],
    data: Optional[Any],
    response_type: Optional[str],
    policy: RetryPolicy,
) -> Any:
    start_time = time.time()
    try:
        response = await asyncio.wait_for(
            client.request(method, url, headers=headers, json=json, data=data,
                           timeout=policy.timeout),
            timeout=policy.timeout,
        )
    except httpx.ConnectTimeout as e:
        # No connection was made, so nothing was aborted mid-flight
        logger.error(f"[net] Connection timed out fetching {url}: {e!r}")
        raise TransientNetworkError(f"Failed to fetch: {e}", url=url, code='ETIMEDOUT') from e
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        logger.error(f"[net] Fetch request aborted due to timeout ({policy.timeout}s): {url}")
        raise FetchTimeoutError("Fetch request aborted due to timeout", url=url) from e
    except httpx.TransportError as e:
        code = _error_code(e)
        logger.error(f"[net] Connection error fetching {url}: {e!r} (code={code})")
        raise TransientNetworkError(f"Failed to fetch: {e}", url=url, code=code) from e

    elapsed_ms = int((time.time() - start_time) * 1000)
    logger.info(f"[net] {method} {response.status_code} {url} ({len(response.content)} bytes, {elapsed_ms}ms)")

    if not response.is_success:
        raise HTTPStatusError(response.status_code, response.reason_phrase, url=url)

    return decode_body(response, response_type)


async def backoff_fetch(
    url: str,
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
    json: Optional[Any] = None,
    data: Optional[Any] = None,
    response_type: Optional[str] = None,
    policy: Optional[RetryPolicy] = None,
    client: Optional[httpx.AsyncClient] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Any:
    """
    Fetch `url` with retries.

    Retries transport failures and 5xx responses with exponential backoff. A
    per-attempt timeout aborts the request and raises FetchTimeoutError at once.
    After the last attempt the final error is re-raised as is.

    Args:
        url: URL to fetch
        method: HTTP method
        headers: Request headers
        json: JSON body
        data: Form body
        response_type: Force decoding as 'json', 'text' or 'html'
        policy: RetryPolicy (defaults to DEFAULT_POLICY)
        client: httpx client to reuse; a short-lived one is opened otherwise
        sleep: Async sleep between attempts

    Returns:
        Decoded body (dict/list for JSON, str otherwise)
    """
    if response_type is not None and response_type not in RESPONSE_TYPES:
        raise ValueError(f"Unsupported response type: {response_type}")
    policy = policy or DEFAULT_POLICY

    async def run(http: httpx.AsyncClient) -> Any:
        async def attempt() -> Any:
            return await _single_request(http, url, method.upper(), headers, json, data,
                                         response_type, policy)
        try:
            return await with_backoff(attempt, policy, sleep=sleep)
        except Exception as e:
            if is_retryable_error(e):
                logger.error(f"[net] Max retries reached for {url}: {e}")
            else:
                logger.error(f"[net] Non-retryable error for {url}: {e}")
            raise

    if client is not None:
        return await run(client)
    async with httpx.AsyncClient(follow_redirects=True) as http:
        return await run(http)
