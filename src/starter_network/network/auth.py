"""Bearer token injection.

Usage example:
    from starter_network.infrastructure.token_store import InMemoryTokenStore
    from starter_network.network.auth import AuthInterceptor

    auth = AuthInterceptor(InMemoryTokenStore(access_token="abc123"))
"""

from __future__ import annotations

import asyncio
from typing import override

from ..exceptions import TransportError
from ..observability import get_logger
from ..protocols import Interceptor, TokenStore
from ..types import RawResponse, RequestDescriptor

AUTHORIZATION_HEADER = "Authorization"

logger = get_logger("starter_network.network.auth")


class AuthInterceptor(Interceptor):
    """Attach the stored access token and drop it once the server rejects it.

    Token store calls run in a worker thread, since file-backed stores do disk I/O.
    """

    def __init__(self, token_store: TokenStore) -> None:
        self._token_store = token_store

    @override
    async def on_request(self, request: RequestDescriptor) -> RequestDescriptor | RawResponse:
        if request.options.skip_auth:
            return request
        token = await asyncio.to_thread(self._token_store.get_token)
        if not token:
            return request
        return request.with_header(AUTHORIZATION_HEADER, f"Bearer {token}")

    @override
    async def on_response(self, request: RequestDescriptor, response: RawResponse) -> RawResponse:
        return response

    @override
    async def on_error(
        self, request: RequestDescriptor, failure: TransportError
    ) -> RawResponse | None:
        if failure.status_code == 401:
            logger.info("Clearing access token after 401 from %s", request.url)
            await asyncio.to_thread(self._token_store.clear_token)
        return None
