from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from werkzeug.exceptions import HTTPException
import logging
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(getattr(logging, str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from quizhub.main import main
    flask_app.register_blueprint(main)

    from quizhub.api.scores import scores
    from quizhub.api.leaderboards import leaderboards
    from quizhub.api.social import social
    from quizhub.api.contact import contact
    from quizhub.api.recaps import recaps
    from quizhub.api.site import site
    from quizhub.api.live import live
    from quizhub.api.admin import admin
    flask_app.register_blueprint(scores, url_prefix='/api/scores')
    flask_app.register_blueprint(leaderboards, url_prefix='/api/leaderboards')
    flask_app.register_blueprint(social, url_prefix='/api')
    flask_app.register_blueprint(contact, url_prefix='/api/contact')
    flask_app.register_blueprint(recaps, url_prefix='/api/recaps')
    flask_app.register_blueprint(site, url_prefix='/api/site')
    flask_app.register_blueprint(live, url_prefix='/api/live')
    flask_app.register_blueprint(admin, url_prefix='/api/admin')

    from quizhub.errors import ApiError

    @flask_app.errorhandler(ApiError)
    def handle_api_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(HTTPException)
    def handle_http_error(exc):
        message = 'Not found' if exc.code == 404 else exc.description
        return jsonify({'error': message}), exc.code

    # Socket.IO handlers bind to the initialized socketio instance
    from quizhub.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from quizhub.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            users = ['quizmaster', 'testuser1', 'testuser2', 'testuser3']
            for u in users:
                user = User(username=u, is_admin=(u == 'quizmaster'))
                user.set_password('password')
                db.session.add(user)

            db.session.commit()
            print('Database has been reset and seeded!')

    @click.command('make-admin')
    @click.argument('username')
    def make_admin_command(username):
        """Grants admin rights to an existing user."""
        with flask_app.app_context():
            user = User.query.filter(db.func.lower(User.username) == username.lower()).first()
            if not user:
                raise click.ClickException(f'No user named {username}')
            user.is_admin = True
            db.session.commit()
            print(f'{user.username} is now an admin.')

    @click.command('resume-timers')
    def resume_timers_command():
        """Re-arms stage timers for quizzes with a pending deadline."""
        from quizhub.services.live_quiz.scheduler import resume_stage_timers
        count = resume_stage_timers(flask_app)
        print(f'Re-armed {count} stage timer(s).')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(make_admin_command)
    flask_app.cli.add_command(resume_timers_command)

    return flask_app
