"""Per-player timelines of placed cards."""

from typing import Dict, List, Sequence

from chronology import db
from chronology.models import TimelineEntry
from .errors import InvalidPosition


def is_correct_placement(year: int, position: int, years: Sequence[int]) -> bool:
    """Whether ``year`` belongs at ``position`` of an ascending ``years`` list.

    The left neighbour must not be later and the right neighbour must not be
    earlier; a missing neighbour at either end never disqualifies.
    """
    if position < 0 or position > len(years):
        raise InvalidPosition()
    left_ok = position == 0 or years[position - 1] <= year
    right_ok = position == len(years) or year <= years[position]
    return left_ok and right_ok


def get(game_id: int, player_id: int) -> List[TimelineEntry]:
    return (
        TimelineEntry.query.filter_by(game_id=game_id, player_id=player_id)
        .order_by(TimelineEntry.position.asc())
        .all()
    )


def years(game_id: int, player_id: int) -> List[int]:
    return [entry.year for entry in get(game_id, player_id)]


def insert(game_id: int, player_id: int, year: int, card_id: int, position: int) -> TimelineEntry:
    """Insert a card at ``position``, shifting later entries right.

    Correctness is the caller's business; only the bounds are checked here.
    """
    size = TimelineEntry.query.filter_by(game_id=game_id, player_id=player_id).count()
    if position < 0 or position > size:
        raise InvalidPosition()

    TimelineEntry.query.filter(
        TimelineEntry.game_id == game_id,
        TimelineEntry.player_id == player_id,
        TimelineEntry.position >= position,
    ).update({TimelineEntry.position: TimelineEntry.position + 1}, synchronize_session='fetch')

    entry = TimelineEntry(game_id=game_id, player_id=player_id, card_id=card_id, year=year, position=position)
    db.session.add(entry)
    db.session.flush()
    return entry


def sizes(game_id: int) -> Dict[int, int]:
    """Timeline length per player id."""
    rows = (
        db.session.query(TimelineEntry.player_id, db.func.count(TimelineEntry.id))
        .filter(TimelineEntry.game_id == game_id)
        .group_by(TimelineEntry.player_id)
        .all()
    )
    return {player_id: count for player_id, count in rows}


def clear_all(game_id: int) -> None:
    TimelineEntry.query.filter_by(game_id=game_id).delete(synchronize_session='fetch')
    db.session.flush()
