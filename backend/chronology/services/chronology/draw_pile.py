"""Draw pile of dated event cards for a Chronology game."""

import random
import re
from typing import Iterable, Optional

from flask import current_app

from chronology import db
from chronology.models import Card, ChronologyGame, DrawPileEntry, CARD_CATEGORY_PROMPT
from .errors import DrawPileExhausted, NoDecksProvided
from . import current_card as current_card_slot

MIN_YEAR = 1000
MAX_YEAR = 2999

# A standalone four digit word starting with 1 or 2; years glued to letters
# or longer digit runs (1492AD, year1492, 123456) do not count
_YEAR_RE = re.compile(r'\b([12]\d{3})\b')


def parse_year(text: Optional[str]) -> Optional[int]:
    """Return the first year between 1000 and 2999 written in ``text``."""
    if not text:
        return None
    match = _YEAR_RE.search(text)
    if not match:
        return None
    return int(match.group(1))


def resolve_year(card: Card) -> Optional[int]:
    """Structured year when the card has a usable one, else parse the text."""
    if card.year is not None and MIN_YEAR <= card.year <= MAX_YEAR:
        return card.year
    return parse_year(card.text)


def initialize(game: ChronologyGame, deck_ids: Iterable[int]) -> int:
    """Seed the pile with every prompt card of the given decks.

    Cards already in the pile are skipped. Returns the number of entries added.
    """
    deck_ids = list(deck_ids or [])
    if not deck_ids:
        raise NoDecksProvided()

    existing = {
        card_id for (card_id,) in db.session.query(DrawPileEntry.card_id).filter_by(game_id=game.id)
    }
    cards = Card.query.filter(Card.deck_id.in_(deck_ids), Card.category == CARD_CATEGORY_PROMPT).all()
    added = 0
    for card in cards:
        if card.id in existing:
            continue
        db.session.add(DrawPileEntry(game_id=game.id, card_id=card.id, year=None, drawn=False))
        existing.add(card.id)
        added += 1
    db.session.flush()
    return added


def resolve_years(game: ChronologyGame) -> int:
    """Fill in every entry's year, dropping entries without one.

    Returns the number of entries removed.
    """
    removed = 0
    for entry in DrawPileEntry.query.filter_by(game_id=game.id).all():
        year = resolve_year(entry.card)
        if year is None:
            db.session.delete(entry)
            removed += 1
        elif entry.year != year:
            entry.year = year
    db.session.flush()
    if removed:
        current_app.logger.info(f"[draw-pile] game={game.id} dropped {removed} card(s) without a year")
    return removed


def undrawn_count(game: ChronologyGame) -> int:
    return DrawPileEntry.query.filter_by(game_id=game.id, drawn=False).count()


def take_random(game: ChronologyGame) -> DrawPileEntry:
    """Mark one random undrawn entry as drawn and return it."""
    candidates = DrawPileEntry.query.filter_by(game_id=game.id, drawn=False).all()
    if not candidates:
        raise DrawPileExhausted()
    entry = random.choice(candidates)
    entry.drawn = True
    db.session.flush()
    return entry


def draw_random(game: ChronologyGame) -> DrawPileEntry:
    """Draw a random card into the game's current card slot."""
    current_card_slot.clear(game)
    entry = take_random(game)
    current_card_slot.put(game, entry.card_id, entry.year)
    return entry


def replenish_all(game: ChronologyGame) -> None:
    DrawPileEntry.query.filter_by(game_id=game.id).update({'drawn': False}, synchronize_session='fetch')
    db.session.flush()
