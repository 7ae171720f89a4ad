from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

SEED_EVENTS = [
    'The Magna Carta is sealed at Runnymede in 1215',
    'Columbus reaches the Americas in 1492',
    'The Declaration of Independence is signed in 1776',
    'The Bastille is stormed in 1789',
    'Napoleon is defeated at Waterloo in 1815',
    'The first telephone call is made in 1876',
    'The Wright brothers fly at Kitty Hawk in 1903',
    'The Titanic sinks in 1912',
    'The first Moon landing happens in 1969',
    'The Berlin Wall falls in 1989',
    'The World Wide Web is proposed in 1989',
    'The euro enters circulation in 2002',
]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from chronology.main import main
    flask_app.register_blueprint(main)

    from chronology.api.chronology import chronology
    flask_app.register_blueprint(chronology, url_prefix='/chronology')

    from chronology.api.decks import decks
    flask_app.register_blueprint(decks, url_prefix='/decks')

    # Socket.IO handlers plus the translator from engine events to socket messages
    from chronology.socketio_events import register_socketio_handlers, broadcast_game_event
    from chronology.services.chronology.events import subscribe
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))
    subscribe(flask_app, broadcast_game_event)

    from chronology.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Login required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from chronology.models import Card, Deck, CARD_CATEGORY_PROMPT
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            users = ['testuser1', 'testuser2', 'testuser3']
            for u in users:
                user = User(username=u)
                user.set_password('password')
                db.session.add(user)

            # Seed the default Chronology deck
            deck = Deck(name=flask_app.config.get('CHRONOLOGY_DEFAULT_DECK', 'Chronology'))
            db.session.add(deck)
            db.session.flush()
            for text in SEED_EVENTS:
                db.session.add(Card(deck_id=deck.id, category=CARD_CATEGORY_PROMPT, text=text))

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
