import logging

import click
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from config import Config

# App version, reported by /api/health
APP_VERSION = '1.0.0'

# Create the database object here, but don't attach it to an app yet
db = SQLAlchemy()

# Create the migration engine: this replaces db.create_all()
# Instead of recreating tables from scratch, Migrate tracks changes
# and applies them incrementally (like Git for your database schema)
migrate = Migrate()

# Login manager: handles cookie session authentication
login_manager = LoginManager()

# Rate limiter: prevents brute-force attacks on login/register and
# stops a client hammering the dice endpoints.
limiter = Limiter(key_func=get_remote_address, default_limits=[])


def _configure_logging(app):
    level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    logging.getLogger('taverna').setLevel(level)
    app.logger.setLevel(level)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    # Keep JSON keys in the order the serializers build them
    app.json.sort_keys = False

    _configure_logging(app)

    # Attach the database and migration engine to this app instance
    db.init_app(app)
    migrate.init_app(app, db)

    # Set up Flask-Login. There are no login pages; the API answers 401.
    login_manager.init_app(app)

    # Set up rate limiting
    limiter.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        from taverna.models import User
        user = db.session.get(User, int(user_id))
        # A ban takes effect on the very next request, not the next login
        if user is None or user.is_banned:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        from taverna.errors import AuthError
        raise AuthError()

    from taverna.errors import register_error_handlers
    register_error_handlers(app)

    # Register Blueprints. Each Blueprint is a group of related routes
    from taverna.routes.main import main_bp
    from taverna.routes.auth import auth_bp
    from taverna.routes.campaigns import campaigns_bp
    from taverna.routes.characters import characters_bp
    from taverna.routes.sessions import sessions_bp
    from taverna.routes.combat import combat_bp
    from taverna.routes.messages import messages_bp
    from taverna.routes.scenes import scenes_bp
    from taverna.routes.tables import tables_bp
    from taverna.routes.quests import quests_bp
    from taverna.routes.lore import lore_bp
    from taverna.routes.npcs import npcs_bp
    from taverna.routes.encounters import encounters_bp
    from taverna.routes.timeline import timeline_bp
    from taverna.routes.admin import admin_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(campaigns_bp)
    app.register_blueprint(characters_bp)
    app.register_blueprint(sessions_bp)
    app.register_blueprint(combat_bp)
    app.register_blueprint(messages_bp)
    app.register_blueprint(scenes_bp)
    app.register_blueprint(tables_bp)
    app.register_blueprint(quests_bp)
    app.register_blueprint(lore_bp)
    app.register_blueprint(npcs_bp)
    app.register_blueprint(encounters_bp)
    app.register_blueprint(timeline_bp)
    app.register_blueprint(admin_bp)

    # CLI command: flask create-admin EMAIL DISPLAY_NAME
    # Creates the first platform admin (or promotes an existing account).
    @app.cli.command('create-admin')
    @click.argument('email')
    @click.argument('display_name')
    @click.password_option()
    def create_admin(email, display_name, password):
        """Create a platform admin account, or promote an existing one."""
        from taverna.models import User

        email = email.strip().lower()
        user = User.query.filter_by(email=email).first()
        if user:
            user.role = 'ADMIN'
            db.session.commit()
            print(f'Promoted {email} to ADMIN.')
            return

        if len(password) < 8:
            raise click.BadParameter('Password must be at least 8 characters.')
        user = User(email=email, display_name=display_name, role='ADMIN')
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        print(f'Created admin account {email}.')

    # CLI command: flask seed-tables CAMPAIGN_ID
    @app.cli.command('seed-tables')
    @click.argument('campaign_id', type=int)
    def seed_tables_command(campaign_id):
        """Add the starter rollable tables to a campaign."""
        from taverna.errors import NotFoundError
        from taverna.starter_tables import seed_tables

        try:
            added, skipped = seed_tables(campaign_id)
        except NotFoundError as e:
            raise click.ClickException(e.message)
        for name in added:
            print(f'  ADDED {name}')
        for name in skipped:
            print(f'  SKIP  {name}')
        print(f'\nDone: {len(added)} table(s) added, {len(skipped)} skipped.')

    return app
