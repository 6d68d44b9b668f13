"""Application factory and initialization"""
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from config import config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()

def create_app(config_name='default', notifier=None):
    """Create and configure the Flask application"""
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    if not app.testing:
        from microlend.logging import setup_logging
        setup_logging(app.config['LOG_LEVEL'], app.config['LOG_FORMAT'])

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)

    from microlend.errors import register_error_handlers
    register_error_handlers(app)

    # Side channels (SMS, in-app notifications, activity log)
    from microlend.notifications import init_notifier
    init_notifier(app, notifier)

    # Register blueprints
    from microlend.auth import auth_bp
    from microlend.loans import loans_bp
    from microlend.payments import payments_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(loans_bp, url_prefix='/loans')
    app.register_blueprint(payments_bp, url_prefix='/payments')

    return app
