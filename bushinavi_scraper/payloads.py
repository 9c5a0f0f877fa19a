"""
Bushi Navi / Decklog payload parsing

Turns the three intercepted JSON payloads into model objects:
- event list:   {"success": {"events": [{"event_id": ...}, ...]}}
- event detail: {"success": {"joined_player_count": N,
                             "grouped_rankings": {"": {key: {"rank": r, "team_member": [...]}}}}}
- deck view:    {"deck_id": ..., "deck_param2": class, "list": [{"name", "card_number", "num"}]}

Malformed payloads raise PayloadError; a single bad ranking entry is skipped.
"""

import logging
from typing import Any, Dict, List, Tuple

from .core import Card, DeckRecord, PayloadError, Ranking, TeamMember

logger = logging.getLogger('bushinavi_scraper.payloads')


def rank_cutoff(joined_player_count: int) -> int:
    """
    Lowest rank that still counts as a result for an event of this size.

    Under 8 players only the winner counts, 8 to 16 the top 4, above 16 the top 8.
    """
    if joined_player_count < 8:
        return 1
    if joined_player_count <= 16:
        return 4
    return 8


def _success(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict) or not isinstance(payload.get('success'), dict):
        raise PayloadError("Payload has no 'success' object")
    return payload['success']


def parse_event_ids(payload: Any) -> List[Any]:
    """Event ids from the event list payload, in listing order"""
    events = _success(payload).get('events')
    if not isinstance(events, list):
        raise PayloadError("Event list payload has no 'events' list")
    ids = []
    for event in events:
        if isinstance(event, dict) and event.get('event_id') is not None:
            ids.append(event['event_id'])
    return ids


def _parse_member(raw: Dict[str, Any]) -> TeamMember:
    return TeamMember(
        player_name=raw.get('player_name'),
        deck_recipe_id=raw.get('deck_recipe_id') or None
    )


def parse_event_detail(payload: Any) -> Tuple[int, List[Ranking]]:
    """
    Returns (joined_player_count, rankings sorted by rank).
    """
    success = _success(payload)
    try:
        player_count = int(success['joined_player_count'])
    except (KeyError, TypeError, ValueError) as e:
        raise PayloadError(f"Bad joined_player_count: {e}") from e

    grouped = success.get('grouped_rankings') or {}
    if not isinstance(grouped, dict):
        raise PayloadError("grouped_rankings is not an object")
    group = grouped.get('') or {}
    entries = group.values() if isinstance(group, dict) else group

    rankings = []
    for entry in entries:
        try:
            rank = int(entry['rank'])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping ranking entry without a usable rank: {e!r}")
            continue
        members = [_parse_member(m) for m in entry.get('team_member') or [] if isinstance(m, dict)]
        rankings.append(Ranking(rank=rank, team_member=members))

    rankings.sort(key=lambda r: r.rank)
    return player_count, rankings


def qualifying_rankings(rankings: List[Ranking], joined_player_count: int) -> List[Ranking]:
    cutoff = rank_cutoff(joined_player_count)
    return [r for r in rankings if r.rank <= cutoff]


def build_deck_record(payload: Any, user_name: str, rank: int) -> DeckRecord:
    """
    Simplify a deck view payload into a DeckRecord for the given player.

    A body without deck_id or without a card list (an error body, say) is
    not a deck and raises PayloadError. Lines with no positive count are dropped.
    """
    if not isinstance(payload, dict):
        raise PayloadError("Deck payload is not an object")
    if payload.get('deck_id') in (None, ''):
        raise PayloadError(f"Deck payload has no deck_id: {str(payload)[:200]}")
    raw_cards = payload.get('list')
    if not isinstance(raw_cards, list):
        raise PayloadError(f"Deck payload has no card list for deck_id: {payload['deck_id']}")

    cards = []
    for raw in raw_cards:
        if not isinstance(raw, dict):
            continue
        try:
            count = int(raw.get('num') or 0)
        except (TypeError, ValueError) as e:
            raise PayloadError(f"Bad card count for {raw.get('card_number')}: {e}") from e
        if count <= 0:
            logger.warning(f"Dropping card {raw.get('card_number')} with count {count} "
                           f"from deck_id: {payload['deck_id']}")
            continue
        cards.append(Card(
            card_name=raw.get('name'),
            card_id=raw.get('card_number'),
            count=count
        ))

    return DeckRecord(
        deck_id=payload['deck_id'],
        class_name=payload.get('deck_param2'),
        user_name=user_name,
        rank=rank,
        cards=cards
    )
