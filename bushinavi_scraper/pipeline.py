#!/usr/bin/env python3
"""
Pipeline Module - runs listing -> event detail -> deck stages end to end

Events and decks are fetched concurrently with asyncio.gather; separate
page pools cap how many event pages and deck pages are open at once.
Nothing is returned until every branch has finished.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from playwright.async_api import BrowserContext

from .core import BrowserSession, DeckRecord, PagePool, ResultSink, ScraperConfig, logger
from .deck import DeckStage
from .events import EventDetailStage, EventListStage


@dataclass
class PipelineResult:
    """Everything one run produced"""
    listing_url: str
    event_ids: List[Any] = field(default_factory=list)
    records: List[DeckRecord] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def total_decks(self) -> int:
        return len(self.records)

    def to_list(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self.records]


class DeckPipeline:
    """
    Wires the three stages together around one ResultSink.

    Example usage:
        async with BrowserSession(config) as session:
            result = await DeckPipeline(session.context, config).run(url)
    """

    def __init__(self, context: BrowserContext, config: Optional[ScraperConfig] = None):
        self.config = config or ScraperConfig()
        self.sink = ResultSink()

        nav_timeout = self.config.navigation_timeout
        self.deck_stage = DeckStage(
            PagePool(context, self.config.max_deck_pages, nav_timeout), self.sink, self.config
        )
        self.event_stage = EventDetailStage(
            PagePool(context, self.config.max_event_pages, nav_timeout), self.deck_stage, self.config
        )
        self.list_stage = EventListStage(
            PagePool(context, None, nav_timeout), self.event_stage, self.config
        )

    async def run(self, listing_url: str) -> PipelineResult:
        """
        Raises:
            ListingTimeoutError: the listing page never became ready
        """
        start_time = time.time()
        logger.info(f"Starting run for {listing_url}")

        event_ids = await self.list_stage.run(listing_url)

        result = PipelineResult(
            listing_url=listing_url,
            event_ids=event_ids,
            records=self.sink.records,
            duration_seconds=time.time() - start_time
        )
        logger.info(
            f"Run complete: {result.total_decks} decks from {len(event_ids)} events "
            f"in {result.duration_seconds:.1f}s"
        )
        return result


async def run_pipeline(listing_url: str, config: Optional[ScraperConfig] = None) -> PipelineResult:
    """
    Convenience function: launch a browser, run the pipeline, close the browser.

    Example:
        result = await run_pipeline(build_listing_url(*last_week_window()))
    """
    config = config or ScraperConfig()
    async with BrowserSession(config) as session:
        return await DeckPipeline(session.context, config).run(listing_url)
