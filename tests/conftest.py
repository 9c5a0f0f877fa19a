"""
Browser-free fakes for driving the stages in tests.

FakeBrowserContext hands out FakePage objects whose goto() replays a
scripted list of network responses to the page's 'response' listeners and
whose wait_for_selector() raises Playwright's own TimeoutError when the
script says the page never becomes ready.
"""
import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from bushinavi_scraper.core import (
    DECK_PAGE_URL,
    EVENT_PAGE_URL,
    ScraperConfig,
)

LIST_API_URL = 'https://api.bushi-navi.com/api/user/event/result/list?game_title_id[]=6'
EVENT_API_URL = 'https://api.bushi-navi.com/api/user/event/result/detail/{event_id}'
DECK_API_URL = 'https://decklog.bushiroad.com/system/app/api/view/{deck_id}'
LISTING_URL = 'https://www.bushi-navi.com/event/result/list?game_title_id[]=6&limit=500'


@dataclass
class FakeRequest:
    url: str
    method: str = 'GET'
    resource_type: str = 'xhr'


class FakeResponse:
    def __init__(self, url: str, body: Any, method: str = 'GET',
                 content_type: str = 'application/json', resource_type: str = 'xhr'):
        self.url = url
        self.request = FakeRequest(url=url, method=method, resource_type=resource_type)
        self.headers = {'content-type': content_type}
        self._body = body

    async def json(self):
        if isinstance(self._body, str):
            return json.loads(self._body)
        return self._body

    async def text(self):
        if isinstance(self._body, str):
            return self._body
        return json.dumps(self._body)


@dataclass
class PageScript:
    """What one navigation does: responses emitted, then ready or not"""
    responses: List[FakeResponse] = field(default_factory=list)
    ready: bool = True
    delay: float = 0.0
    goto_error: Optional[str] = None


class FakePage:
    def __init__(self, context: 'FakeBrowserContext'):
        self.context = context
        self.closed = False
        self.navigation_timeout = None
        self._handlers = []
        self._script = PageScript(ready=False)

    def on(self, event: str, handler):
        assert event == 'response'
        self._handlers.append(handler)

    def remove_listener(self, event: str, handler):
        self._handlers.remove(handler)

    def set_default_navigation_timeout(self, timeout):
        self.navigation_timeout = timeout

    async def goto(self, url: str):
        self.context.visits.append(url)
        self._script = self.context.script_for(url)
        if self._script.delay:
            await asyncio.sleep(self._script.delay)
        if self._script.goto_error:
            raise PlaywrightError(self._script.goto_error)
        for response in self._script.responses:
            for handler in list(self._handlers):
                handler(response)
        await asyncio.sleep(0)

    async def wait_for_selector(self, selector: str, timeout: Optional[int] = None):
        await asyncio.sleep(0)
        if not self._script.ready:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def close(self):
        assert not self.closed, "page closed twice"
        self.closed = True
        self.context.open_pages -= 1


class FakeBrowserContext:
    def __init__(self):
        self.scripts: Dict[str, List[PageScript]] = {}
        self.visits: List[str] = []
        self.pages: List[FakePage] = []
        self.open_pages = 0
        self.peak_open_pages = 0

    def add(self, url: str, *scripts: PageScript):
        """Scripts are used one per visit; the last one repeats"""
        self.scripts.setdefault(url, []).extend(scripts)

    def script_for(self, url: str) -> PageScript:
        scripts = self.scripts.get(url)
        if not scripts:
            return PageScript(ready=False)
        if len(scripts) > 1:
            return scripts.pop(0)
        return scripts[0]

    async def new_page(self) -> FakePage:
        page = FakePage(self)
        self.pages.append(page)
        self.open_pages += 1
        self.peak_open_pages = max(self.peak_open_pages, self.open_pages)
        return page

    def visits_to(self, prefix: str) -> List[str]:
        return [v for v in self.visits if v.startswith(prefix)]


class FakeSite:
    """Scripts Bushi Navi listing/event pages and Decklog deck pages"""

    def __init__(self):
        self.context = FakeBrowserContext()

    def listing(self, event_ids: List[Any], ready: bool = True, url: str = LISTING_URL):
        body = {'success': {'events': [{'event_id': e} for e in event_ids]}}
        document = FakeResponse(url, '<html></html>', content_type='text/html', resource_type='document')
        self.context.add(url, PageScript(
            responses=[document, FakeResponse(LIST_API_URL, body)],
            ready=ready
        ))

    def event(self, event_id: Any, player_count: int, rankings: List[Dict[str, Any]], **script):
        body = {'success': {
            'joined_player_count': player_count,
            'grouped_rankings': {'': {str(i): r for i, r in enumerate(rankings)}},
        }}
        api = FakeResponse(EVENT_API_URL.format(event_id=event_id), body)
        self.context.add(EVENT_PAGE_URL.format(event_id=event_id), PageScript(responses=[api], **script))

    def event_raw(self, event_id: Any, *scripts: PageScript):
        self.context.add(EVENT_PAGE_URL.format(event_id=event_id), *scripts)

    def deck(self, deck_id: str, *scripts: PageScript):
        self.context.add(DECK_PAGE_URL.format(deck_id=deck_id), *scripts)

    def deck_ok(self, deck_id: str, class_name: str = 'Elf', cards=None, **script) -> PageScript:
        body = {
            'deck_id': deck_id,
            'deck_param2': class_name,
            'list': cards if cards is not None else [
                {'name': 'Fairy Whisperer', 'card_number': 'BP01-001', 'num': 3},
            ],
        }
        return PageScript(responses=[self.deck_response(deck_id, body)], **script)

    def deck_not_json(self, deck_id: str) -> PageScript:
        return PageScript(responses=[
            self.deck_response(deck_id, '<html>Service Unavailable</html>', content_type='text/html')
        ])

    @staticmethod
    def deck_response(deck_id: str, body: Any, content_type: str = 'application/json') -> FakeResponse:
        return FakeResponse(DECK_API_URL.format(deck_id=deck_id), body, method='POST',
                            content_type=content_type)

    def deck_visits(self) -> List[str]:
        return self.context.visits_to(DECK_PAGE_URL.format(deck_id=''))


def ranking(rank: int, *members) -> Dict[str, Any]:
    """members are (player_name, deck_recipe_id) pairs"""
    return {
        'rank': rank,
        'team_member': [{'player_name': n, 'deck_recipe_id': d} for n, d in members],
    }


@pytest.fixture
def site():
    return FakeSite()


@pytest.fixture
def make_ranking():
    return ranking


@pytest.fixture
def config():
    return ScraperConfig(
        list_timeout=1000,
        event_timeout=1000,
        deck_timeout=200,
        max_event_pages=None,
        max_deck_pages=None
    )
