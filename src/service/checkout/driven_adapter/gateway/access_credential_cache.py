"""Process-wide access credential cache with single-flight acquisition"""

import asyncio
from enum import StrEnum
import time
from typing import Awaitable, Callable, Optional

import attrs
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger


class CredentialState(StrEnum):
    UNSET = 'unset'
    FETCHING = 'fetching'
    VALID = 'valid'
    EXPIRED = 'expired'


@attrs.define(frozen=True)
class AccessCredential:
    token: str = attrs.field(repr=False)
    expires_at: float  # clock() value after which the token must not be used


def _retrieve_outcome(task: asyncio.Task[AccessCredential]) -> None:
    # Every waiter may have been cancelled; the failure is still consumed here
    if not task.cancelled():
        task.exception()


class AccessCredentialCache:
    """
    Bearer token cache shared by every payment attempt in the process

    Lifecycle: unset -> fetching -> valid(until expires_at) -> expired -> fetching ...

    - Concurrent callers that find no valid credential share ONE in-flight fetch;
      they all receive the same token, or the same exception
    - A credential is considered expired expiry_margin_seconds before the gateway's
      expiry, so a request is never signed with a token about to lapse
    - invalidate() drops the token after the gateway rejected it (HTTP 401)
    """

    def __init__(
        self,
        *,
        expiry_margin_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.tracer = trace.get_tracer(__name__)
        self._expiry_margin_seconds = expiry_margin_seconds
        self._clock = clock
        self._credential: Optional[AccessCredential] = None
        self._inflight: Optional[asyncio.Task[AccessCredential]] = None

    @property
    def state(self) -> CredentialState:
        if self._inflight is not None and not self._inflight.done():
            return CredentialState.FETCHING
        if self._credential is None:
            return CredentialState.UNSET
        if self._is_usable(self._credential):
            return CredentialState.VALID
        return CredentialState.EXPIRED

    def now(self) -> float:
        return self._clock()

    def _is_usable(self, credential: AccessCredential) -> bool:
        return self.now() < credential.expires_at - self._expiry_margin_seconds

    async def get(self, fetch: Callable[[], Awaitable[AccessCredential]]) -> AccessCredential:
        """Return the cached credential, or join/start the single in-flight fetch."""
        with self.tracer.start_as_current_span('gateway.credential_cache.get') as span:
            credential = self._credential
            if credential is not None and self._is_usable(credential):
                span.set_attribute('cache_hit', True)
                return credential

            span.set_attribute('cache_hit', False)
            if self._inflight is None or self._inflight.done():
                Logger.base.info('🔑 [CREDENTIAL] Fetching new access credential')
                self._inflight = asyncio.ensure_future(self._fetch_and_store(fetch))
                self._inflight.add_done_callback(_retrieve_outcome)
            else:
                span.set_attribute('joined_inflight', True)

            # shield: a cancelled caller must not cancel the fetch other callers wait on
            return await asyncio.shield(self._inflight)

    async def _fetch_and_store(
        self, fetch: Callable[[], Awaitable[AccessCredential]]
    ) -> AccessCredential:
        try:
            credential = await fetch()
        finally:
            self._inflight = None
        self._credential = credential
        return credential

    def invalidate(self, *, token: str | None = None) -> None:
        """
        Drop the cached credential.

        When token is given, only drop it if it is still the cached one, so a
        rejection of an old token does not discard a fresher one.
        """
        if self._credential is None:
            return
        if token is not None and self._credential.token != token:
            return
        Logger.base.warning('🔑 [CREDENTIAL] Access credential invalidated')
        self._credential = None
