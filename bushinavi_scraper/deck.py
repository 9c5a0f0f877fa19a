#!/usr/bin/env python3
"""
Deck Stage - resolves one Decklog deck into a DeckRecord

Each attempt opens its own page, navigates to the deck view, waits for the
card list to render and then takes the intercepted /app/api/view payload.
A ready timeout, a navigation error or an undecodable payload fails the
attempt; the deck is retried on a fresh page up to max_retries times.
"""

import asyncio
import enum
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from .core import (
    DECK_API_PATH,
    DECK_PAGE_URL,
    DECK_READY_SELECTOR,
    DeckRecord,
    PagePool,
    PayloadError,
    ResultSink,
    ScraperConfig,
    logger
)
from .interceptor import ResponseInterceptor
from .payloads import build_deck_record


class DeckOutcome(enum.Enum):
    SUCCESS = 'success'
    EXHAUSTED_RETRIES = 'exhausted_retries'
    SKIPPED_NO_ID = 'skipped_no_id'


class DeckStage:
    """Fetches decks and appends each resolved one to the shared sink"""

    def __init__(self, pages: PagePool, sink: ResultSink, config: Optional[ScraperConfig] = None):
        self.pages = pages
        self.sink = sink
        self.config = config or ScraperConfig()

    async def fetch(self, deck_id: Optional[str], user_name: str, rank: int) -> DeckOutcome:
        """Resolve one deck, trying at most 1 + max_retries times"""
        if not deck_id:
            logger.warning(f"Skipped processing: deck_id is missing for user: {user_name}, rank: {rank}")
            return DeckOutcome.SKIPPED_NO_ID

        for attempt in range(self.config.max_attempts):
            if attempt:
                logger.info(f"Retrying deck page for deck_id: {deck_id} (retry {attempt})")

            record = await self._attempt(deck_id, user_name, rank, attempt)
            if record is not None:
                self.sink.add(record)
                logger.info(f"Deck processed: {record.deck_id} by {user_name} (Rank: {rank})")
                return DeckOutcome.SUCCESS

        logger.error(f"Failed to process deck_id: {deck_id} after {self.config.max_retries} retries.")
        return DeckOutcome.EXHAUSTED_RETRIES

    async def _attempt(self, deck_id: str, user_name: str, rank: int, attempt: int) -> Optional[DeckRecord]:
        """One navigation on a page of its own; None means the attempt failed"""
        url = DECK_PAGE_URL.format(deck_id=deck_id)
        timeout_s = self.config.deck_timeout / 1000

        async with self.pages.page() as page:
            interceptor = ResponseInterceptor(page, DECK_API_PATH, 'POST')
            pending = interceptor.expect_next()
            try:
                logger.info(f"Opening deck page for deck_id: {deck_id}, user: {user_name}, "
                            f"rank: {rank}, retry: {attempt}")
                await page.goto(url)

                try:
                    await page.wait_for_selector(DECK_READY_SELECTOR, timeout=self.config.deck_timeout)
                except PlaywrightTimeout:
                    logger.error(f"Timeout: {DECK_READY_SELECTOR} not found for deck_id: {deck_id}")
                    return None

                try:
                    result = await asyncio.wait_for(pending, timeout=timeout_s)
                except asyncio.TimeoutError:
                    logger.error(f"No deck response intercepted for deck_id: {deck_id}")
                    return None

                if not result.ok:
                    logger.error(f"Deck response for deck_id: {deck_id} unusable: {result.error}")
                    return None

                try:
                    return build_deck_record(result.data, user_name, rank)
                except PayloadError as e:
                    logger.error(f"Malformed deck payload for deck_id: {deck_id}: {e}")
                    return None

            except PlaywrightError as e:
                logger.error(f"Browser error on deck page for deck_id: {deck_id}: {e}")
                return None
            finally:
                interceptor.detach()
