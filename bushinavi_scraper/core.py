#!/usr/bin/env python3
"""
Bushi Navi Scraper Core - Shared configuration, data models and browser plumbing

Tournament results are pulled from bushi-navi.com and deck lists from
decklog.bushiroad.com by intercepting the JSON the pages fetch, not by
reading rendered HTML.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from playwright.async_api import async_playwright, Browser, BrowserContext, Page

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger('bushinavi_scraper')


# ==================== SITE CONSTANTS ====================

LIST_PAGE_URL = 'https://www.bushi-navi.com/event/result/list'
EVENT_PAGE_URL = 'https://www.bushi-navi.com/event/result/{event_id}'
DECK_PAGE_URL = 'https://decklog.bushiroad.com/view/{deck_id}'

LIST_API_PATH = '/event/result/list'
EVENT_API_PATH = '/api/user/event/result/detail/'
DECK_API_PATH = '/app/api/view'

LIST_READY_SELECTOR = '.btn-to-detail'
EVENT_READY_SELECTOR = '.showDeckButton'
DECK_READY_SELECTOR = '.card-detail'

DEFAULT_LAUNCH_ARGS = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-accelerated-2d-canvas',
    '--disable-gpu',
    '--window-size=1920x1080',
]


# ==================== ERRORS ====================

class ScraperError(Exception):
    """Base class for scraper failures"""


class ListingTimeoutError(ScraperError):
    """The event listing never became ready; nothing downstream is usable."""


class PayloadError(ScraperError, ValueError):
    """A decoded JSON payload does not have the expected shape."""


class ConfigurationError(ScraperError):
    """Required run configuration is missing."""


# ==================== CONFIG ====================

@dataclass
class ScraperConfig:
    """Configuration for the Bushi Navi scraper"""
    headless: bool = True
    executable_path: Optional[str] = None
    launch_args: List[str] = field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))
    # Browser timeouts are in milliseconds, like Playwright's own
    navigation_timeout: int = 3600000
    list_timeout: int = 3600000
    event_timeout: int = 3600000
    deck_timeout: int = 60000
    max_retries: int = 3
    # None or 0 means no cap on open pages of that kind
    max_event_pages: Optional[int] = 4
    max_deck_pages: Optional[int] = 8
    game_title_id: int = 6
    series_type: int = 3
    limit: int = 500

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


# ==================== DATA MODELS ====================

@dataclass
class Card:
    """One line of a deck list"""
    card_name: Optional[str]
    card_id: Optional[str]
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'card_name': self.card_name,
            'card_id': self.card_id,
            'count': self.count,
        }


@dataclass
class DeckRecord:
    """A resolved deck for one ranked player"""
    deck_id: Any
    class_name: Optional[str]
    user_name: Optional[str]
    rank: int
    cards: List[Card] = field(default_factory=list)

    @property
    def key(self) -> Tuple[Any, Optional[str], int]:
        return (self.deck_id, self.user_name, self.rank)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'deck_id': self.deck_id,
            'class_name': self.class_name,
            'user_name': self.user_name,
            'rank': self.rank,
            'cards': [c.to_dict() for c in self.cards],
        }


@dataclass
class TeamMember:
    player_name: Optional[str]
    deck_recipe_id: Optional[str] = None


@dataclass
class Ranking:
    rank: int
    team_member: List[TeamMember] = field(default_factory=list)


class ResultSink:
    """
    Append-only collection of deck records for one run.

    Every mutation happens on the event loop thread, so no lock is taken.
    Records are keyed by (deck_id, user_name, rank); a second add of the
    same key is ignored.
    """

    def __init__(self):
        self._records: Dict[Tuple[Any, Optional[str], int], DeckRecord] = {}

    def add(self, record: DeckRecord) -> bool:
        if record.key in self._records:
            logger.warning(f"Duplicate deck record ignored: {record.key}")
            return False
        self._records[record.key] = record
        return True

    @property
    def records(self) -> List[DeckRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)


# ==================== BROWSER ====================

class PagePool:
    """
    Hands out pages from a browser context, optionally capping how many
    are open at once. Every page is closed when its block exits.
    """

    def __init__(self, context: BrowserContext, limit: Optional[int] = None,
                 navigation_timeout: int = 3600000):
        self.context = context
        self.limit = limit or None
        self.navigation_timeout = navigation_timeout
        self._semaphore = asyncio.Semaphore(self.limit) if self.limit else None

    def _slot(self):
        if self._semaphore is None:
            return contextlib.nullcontext()
        return self._semaphore

    @contextlib.asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        async with self._slot():
            page = await self.context.new_page()
            page.set_default_navigation_timeout(self.navigation_timeout)
            try:
                yield page
            finally:
                try:
                    await page.close()
                except Exception as e:
                    logger.warning(f"Error closing page: {e}")


class BrowserSession:
    """Launches Chromium and owns the single browser context for a run"""

    def __init__(self, config: Optional[ScraperConfig] = None):
        self.config = config or ScraperConfig()
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Initialize browser"""
        logger.info("Starting browser...")
        self.playwright = await async_playwright().start()

        self.browser = await self.playwright.chromium.launch(
            headless=self.config.headless,
            executable_path=self.config.executable_path,
            args=self.config.launch_args
        )
        self.context = await self.browser.new_context(
            viewport={'width': 1920, 'height': 1080}
        )
        logger.info("Browser launched")

    async def close(self):
        """Clean up browser"""
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()
        logger.info("Browser closed")
