#!/usr/bin/env python3
"""
Response Interceptor - captures the JSON a page's own API calls return

One interceptor is attached to exactly one page. Callers ask for the next
matching response with expect_next() *before* navigating, then await the
returned future once the page is ready. Matching responses are decoded in
a background task so nothing ever raises into the page's event stream.
"""

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Optional, Set, Tuple

from playwright.async_api import Page, Response

from .core import logger

# Only script-initiated traffic; the page's own HTML document can share a URL prefix with its API
API_RESOURCE_TYPES = ('xhr', 'fetch')


@dataclass
class InterceptedResponse:
    """Outcome of decoding one matching response"""
    url: str
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ResponseInterceptor:
    """
    Watches one page for responses whose URL contains url_part and whose
    request used the given method.

    Example usage:
        interceptor = ResponseInterceptor(page, '/app/api/view', 'POST')
        pending = interceptor.expect_next()
        await page.goto(url)
        result = await pending
    """

    def __init__(
        self,
        page: Page,
        url_part: str,
        method: str = 'GET',
        resource_types: Optional[Tuple[str, ...]] = API_RESOURCE_TYPES
    ):
        self.page = page
        self.url_part = url_part
        self.method = method.upper()
        self.resource_types = resource_types
        self._waiters: Deque[asyncio.Future] = deque()
        self._tasks: Set[asyncio.Task] = set()
        self._attached = True
        page.on('response', self._on_response)

    def expect_next(self) -> asyncio.Future:
        """Future resolved with the next matching response decoded after this call"""
        future = asyncio.get_running_loop().create_future()
        self._waiters.append(future)
        return future

    def matches(self, response: Response) -> bool:
        request = response.request
        if request.method.upper() != self.method:
            return False
        if self.url_part not in request.url:
            return False
        if self.resource_types and request.resource_type not in self.resource_types:
            return False
        return True

    def detach(self):
        """Stop listening and drop waiters nobody resolved"""
        if self._attached:
            self.page.remove_listener('response', self._on_response)
            self._attached = False
        while self._waiters:
            self._waiters.popleft().cancel()
        for task in list(self._tasks):
            task.cancel()

    def _on_response(self, response: Response):
        try:
            if not self.matches(response):
                return
        except Exception as e:
            logger.debug(f"Could not inspect response: {e}")
            return

        logger.debug(f"Intercepted {self.method} {response.url}")
        task = asyncio.get_running_loop().create_task(self._decode_and_deliver(response))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _decode_and_deliver(self, response: Response):
        result = await self.decode(response)
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(result)
                return
        logger.debug(f"No caller waiting for {response.url}, dropping response")

    @staticmethod
    async def decode(response: Response) -> InterceptedResponse:
        """Decode a response body as JSON, reporting failure instead of raising"""
        url = response.url
        try:
            content_type = response.headers.get('content-type', '')
            if 'application/json' not in content_type:
                text = await response.text()
                return InterceptedResponse(url=url, error=f"Response is not JSON: {text[:200]}")
            return InterceptedResponse(url=url, data=await response.json())
        except Exception as e:
            return InterceptedResponse(url=url, error=f"Failed to load response body: {e}")
