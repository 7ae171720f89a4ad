from flask import Blueprint, jsonify, request
from flask_login import login_required
from chronology import db
from chronology.models import Card, Deck, CARD_CATEGORY_PROMPT, CARD_CATEGORY_RESPONSE
from chronology.services.chronology.draw_pile import resolve_year


decks = Blueprint('decks', __name__)


@decks.route('', methods=['GET'])
@login_required
def list_decks():
    return jsonify([deck.to_dict() for deck in Deck.query.order_by(Deck.name.asc()).all()])


@decks.route('', methods=['POST'])
@login_required
def create_deck():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Deck name is required'}), 400
    if Deck.query.filter_by(name=name).first():
        return jsonify({'error': 'Deck name already exists'}), 400

    deck = Deck(name=name)
    db.session.add(deck)
    db.session.commit()
    return jsonify(deck.to_dict()), 201


@decks.route('/<int:deck_id>/cards', methods=['GET'])
@login_required
def list_cards(deck_id):
    deck = Deck.query.filter_by(id=deck_id).first_or_404()
    return jsonify([card.to_dict() for card in deck.cards.order_by(Card.id.asc()).all()])


@decks.route('/<int:deck_id>/cards', methods=['POST'])
@login_required
def add_card(deck_id):
    """
    Adds a card to a deck. Prompt cards become Chronology events when they
    carry a year, either as a ``year`` field or written in the text.
    """
    deck = Deck.query.filter_by(id=deck_id).first_or_404()
    data = request.get_json(silent=True) or {}
    text = (data.get('text') or '').strip()
    category = (data.get('category') or CARD_CATEGORY_PROMPT).upper()
    year = data.get('year')

    if not text:
        return jsonify({'error': 'Card text is required'}), 400
    if category not in (CARD_CATEGORY_PROMPT, CARD_CATEGORY_RESPONSE):
        return jsonify({'error': 'Unknown card category'}), 400
    if year is not None:
        try:
            year = int(year)
        except (TypeError, ValueError):
            return jsonify({'error': 'Year must be an integer'}), 400

    card = Card(deck_id=deck.id, category=category, text=text, year=year)
    db.session.add(card)
    db.session.commit()

    payload = card.to_dict()
    payload['resolved_year'] = resolve_year(card)
    return jsonify(payload), 201
