"""The single drawn-but-not-placed card of a game.

The slot lives on the game row itself, so it can only change together with
the rest of the game inside one transaction.
"""

from dataclasses import dataclass
from typing import Optional

from chronology import db
from chronology.models import Card, ChronologyGame


@dataclass(frozen=True)
class CurrentCard:
    card_id: int
    text: str
    year: int

    def to_dict(self):
        return {'card_id': self.card_id, 'text': self.text, 'year': self.year}


def get(game: ChronologyGame) -> Optional[CurrentCard]:
    if game.current_card_id is None:
        return None
    card = db.session.get(Card, game.current_card_id)
    return CurrentCard(
        card_id=game.current_card_id,
        text=card.text if card else '',
        year=game.current_card_year,
    )


def put(game: ChronologyGame, card_id: int, year: int) -> None:
    game.current_card_id = card_id
    game.current_card_year = year
    db.session.flush()


def clear(game: ChronologyGame) -> None:
    game.current_card_id = None
    game.current_card_year = None
    db.session.flush()
