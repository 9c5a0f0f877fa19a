#!/usr/bin/env python3
"""
Event Stages - event discovery and event result resolution

EventListStage loads the result listing, reads every event id from the
intercepted list response and runs EventDetailStage for each of them.
EventDetailStage loads one event's results, keeps the rankings inside the
size-based cutoff and runs DeckStage for every member of those rankings.
Each stage only returns once all the work it spawned has finished.
"""

import asyncio
from typing import Any, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from .core import (
    EVENT_API_PATH,
    EVENT_PAGE_URL,
    EVENT_READY_SELECTOR,
    LIST_API_PATH,
    LIST_READY_SELECTOR,
    ListingTimeoutError,
    PagePool,
    PayloadError,
    Ranking,
    ScraperConfig,
    logger
)
from .deck import DeckOutcome, DeckStage
from .interceptor import ResponseInterceptor
from .payloads import parse_event_detail, parse_event_ids, qualifying_rankings, rank_cutoff


def _log_failures(results: list, label: str) -> list:
    """Log exceptions returned by gather(return_exceptions=True) and drop them"""
    kept = []
    for r in results:
        if isinstance(r, BaseException):
            logger.error(f"{label} branch failed: {r!r}")
        else:
            kept.append(r)
    return kept


class EventDetailStage:
    """Resolves one event and fans out its qualifying decks"""

    def __init__(self, pages: PagePool, decks: DeckStage, config: Optional[ScraperConfig] = None):
        self.pages = pages
        self.decks = decks
        self.config = config or ScraperConfig()

    async def process(self, event_id: Any) -> List[DeckOutcome]:
        """
        Returns one outcome per deck branch spawned for the event.

        An event whose detail never loads or cannot be decoded spawns nothing.
        """
        logger.info(f"Opening event result page for event_id: {event_id}")
        async with self.pages.page() as page:
            interceptor = ResponseInterceptor(page, EVENT_API_PATH, 'GET')
            pending = interceptor.expect_next()
            try:
                rankings = await self._load_rankings(page, pending, event_id)
                outcomes = await self._spawn_decks(event_id, rankings)
            except PlaywrightError as e:
                logger.error(f"Browser error on event page for event_id: {event_id}: {e}")
                outcomes = []
            finally:
                interceptor.detach()

        logger.info(f"Closed result page for event_id: {event_id}")
        return outcomes

    async def _load_rankings(self, page, pending: asyncio.Future, event_id: Any) -> List[Ranking]:
        await page.goto(EVENT_PAGE_URL.format(event_id=event_id))
        logger.info(f"Navigated to event result page for event_id: {event_id}")

        try:
            await page.wait_for_selector(EVENT_READY_SELECTOR, timeout=self.config.event_timeout)
        except PlaywrightTimeout:
            logger.error(f"Timeout: {EVENT_READY_SELECTOR} not found for event_id: {event_id}")
            return []
        logger.info(f"Deck buttons loaded for event_id: {event_id}")

        try:
            result = await asyncio.wait_for(pending, timeout=self.config.event_timeout / 1000)
        except asyncio.TimeoutError:
            logger.error(f"No event detail response intercepted for event_id: {event_id}")
            return []

        if not result.ok:
            logger.error(f"Event detail for event_id: {event_id} unusable: {result.error}")
            return []

        try:
            player_count, rankings = parse_event_detail(result.data)
        except PayloadError as e:
            logger.error(f"Malformed event detail for event_id: {event_id}: {e}")
            return []

        qualifying = qualifying_rankings(rankings, player_count)
        logger.info(f"Event {event_id}: totalParticipants={player_count}, "
                    f"maxRank={rank_cutoff(player_count)}, qualifying rankings={len(qualifying)}")
        return qualifying

    async def _spawn_decks(self, event_id: Any, rankings: List[Ranking]) -> List[DeckOutcome]:
        tasks = []
        for ranking in rankings:
            for member in ranking.team_member:
                logger.info(f"Processing deck for event {event_id}, rank {ranking.rank}, "
                            f"player {member.player_name}")
                tasks.append(self.decks.fetch(member.deck_recipe_id, member.player_name, ranking.rank))

        if not tasks:
            return []

        results = await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"All decks processed for event_id: {event_id}")
        return _log_failures(results, f"Deck (event {event_id})")


class EventListStage:
    """Entry stage: discovers events on the listing page and drains them all"""

    def __init__(self, pages: PagePool, details: EventDetailStage, config: Optional[ScraperConfig] = None):
        self.pages = pages
        self.details = details
        self.config = config or ScraperConfig()

    async def run(self, listing_url: str) -> List[Any]:
        """
        Returns the discovered event ids once every event branch has finished.

        Raises:
            ListingTimeoutError: the listing never became ready
        """
        async with self.pages.page() as page:
            interceptor = ResponseInterceptor(page, LIST_API_PATH, 'GET')
            pending = interceptor.expect_next()
            try:
                event_ids = await self._discover(page, pending, listing_url)
            finally:
                interceptor.detach()

        logger.info(f"Found {len(event_ids)} events")
        if event_ids:
            results = await asyncio.gather(
                *(self.details.process(event_id) for event_id in event_ids),
                return_exceptions=True
            )
            _log_failures(results, "Event")
        logger.info("All events processed")
        return event_ids

    async def _discover(self, page, pending: asyncio.Future, listing_url: str) -> List[Any]:
        await page.goto(listing_url)
        logger.info("Navigated to event list page")

        logger.info("Waiting for event list to load")
        try:
            await page.wait_for_selector(LIST_READY_SELECTOR, timeout=self.config.list_timeout)
        except PlaywrightTimeout as e:
            raise ListingTimeoutError(f"Event list never became ready: {listing_url}") from e

        try:
            result = await asyncio.wait_for(pending, timeout=self.config.list_timeout / 1000)
        except asyncio.TimeoutError as e:
            raise ListingTimeoutError(f"No event list response intercepted: {listing_url}") from e

        if not result.ok:
            logger.error(f"Event list response unusable: {result.error}")
            return []

        try:
            return parse_event_ids(result.data)
        except PayloadError as e:
            logger.error(f"Malformed event list: {e}")
            return []
