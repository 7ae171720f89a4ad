from datetime import datetime
from chronology import db, bcrypt
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

GAME_TYPE_CHRONOLOGY = 'chronology'
CARD_CATEGORY_PROMPT = 'PROMPT'
CARD_CATEGORY_RESPONSE = 'RESPONSE'

STATUS_WAITING = 'waiting'
STATUS_ACTIVE = 'active'
STATUS_FINISHED = 'finished'


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class Deck(db.Model):
    __tablename__ = 'deck'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), unique=True, nullable=False, index=True)
    cards = db.relationship('Card', back_populates='deck', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'card_count': self.cards.count(),
        }


class Card(db.Model):
    __tablename__ = 'card'
    id = db.Column(db.Integer, primary_key=True)
    deck_id = db.Column(db.Integer, db.ForeignKey('deck.id'), nullable=False, index=True)
    category = db.Column(db.String(16), nullable=False, default=CARD_CATEGORY_PROMPT)  # PROMPT, RESPONSE
    text = db.Column(db.Text, nullable=False)
    # Structured year of the event; legacy cards only carry it inside their text
    year = db.Column(db.Integer, nullable=True)
    deck = db.relationship('Deck', back_populates='cards')

    def to_dict(self):
        return {
            'id': self.id,
            'deck_id': self.deck_id,
            'category': self.category,
            'text': self.text,
            'year': self.year,
        }


class Lobby(db.Model):
    __tablename__ = 'lobby'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, index=True)
    game_type = db.Column(db.String(32), nullable=False, default=GAME_TYPE_CHRONOLOGY)
    password_hash = db.Column(db.String(256), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    players = db.relationship('Player', back_populates='lobby', order_by='Player.join_order')
    game = db.relationship('ChronologyGame', back_populates='lobby', uselist=False)

    @property
    def has_password(self):
        return self.password_hash is not None

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8') if password else None

    def check_password(self, password):
        if self.password_hash is None:
            return True
        return bool(password) and bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'game_type': self.game_type,
            'has_password': self.has_password,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Player(db.Model):
    __tablename__ = 'player'
    __table_args__ = (db.UniqueConstraint('lobby_id', 'user_id', name='uq_player_lobby_user'),)
    id = db.Column(db.Integer, primary_key=True)
    lobby_id = db.Column(db.Integer, db.ForeignKey('lobby.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    join_order = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    lobby = db.relationship('Lobby', back_populates='players')
    user = db.relationship('User')

    @property
    def name(self):
        return self.user.username if self.user else None

    def to_dict(self):
        return {
            'id': self.id,
            'lobby_id': self.lobby_id,
            'user_id': self.user_id,
            'name': self.name,
            'is_active': self.is_active,
            'join_order': self.join_order,
        }


class ChronologyGame(db.Model):
    __tablename__ = 'chronology_game'
    id = db.Column(db.Integer, primary_key=True)
    lobby_id = db.Column(db.Integer, db.ForeignKey('lobby.id'), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    status = db.Column(db.String(16), default=STATUS_WAITING, nullable=False)  # waiting, active, finished
    cards_to_win = db.Column(db.Integer, nullable=False, default=5)
    current_player_id = db.Column(
        db.Integer, db.ForeignKey('player.id', name='fk_chronology_game_current_player_id'), nullable=True
    )
    winner_id = db.Column(db.Integer, db.ForeignKey('player.id', name='fk_chronology_game_winner_id'), nullable=True)
    # The card awaiting placement; both columns are null when the slot is empty
    current_card_id = db.Column(db.Integer, db.ForeignKey('card.id', name='fk_chronology_game_current_card_id'), nullable=True)
    current_card_year = db.Column(db.Integer, nullable=True)

    lobby = db.relationship('Lobby', back_populates='game')

    @property
    def winner_name(self):
        if self.winner_id is None:
            return None
        winner = db.session.get(Player, self.winner_id)
        return winner.name if winner else None

    def to_dict(self):
        return {
            'id': self.id,
            'lobby_id': self.lobby_id,
            'status': self.status,
            'cards_to_win': self.cards_to_win,
            'current_player_id': self.current_player_id,
            'winner_id': self.winner_id,
            'winner_name': self.winner_name,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class DrawPileEntry(db.Model):
    __tablename__ = 'chronology_draw_pile'
    __table_args__ = (db.UniqueConstraint('game_id', 'card_id', name='uq_draw_pile_game_card'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('chronology_game.id'), nullable=False, index=True)
    card_id = db.Column(db.Integer, db.ForeignKey('card.id'), nullable=False)
    # Null only between seeding and year resolution, inside one transaction
    year = db.Column(db.Integer, nullable=True)
    drawn = db.Column(db.Boolean, default=False, nullable=False)
    card = db.relationship('Card')


class TimelineEntry(db.Model):
    __tablename__ = 'chronology_timeline'
    __table_args__ = (db.Index('ix_timeline_game_player_position', 'game_id', 'player_id', 'position'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('chronology_game.id'), nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    card_id = db.Column(db.Integer, db.ForeignKey('card.id'), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    position = db.Column(db.Integer, nullable=False)
    placed_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    card = db.relationship('Card')

    def to_dict(self):
        return {
            'id': self.id,
            'card_id': self.card_id,
            'text': self.card.text if self.card else None,
            'year': self.year,
            'position': self.position,
            'placed_at': self.placed_at.isoformat() if self.placed_at else None,
        }
