from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///techservice.db')
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')
    app.config['WON_SETTLE_DELAY_MS'] = int(os.getenv('WON_SETTLE_DELAY_MS', '0'))
    app.config['PASSWORD_MIN_LENGTH'] = int(os.getenv('PASSWORD_MIN_LENGTH', '8'))
    app.config['PAGINATION_DEFAULT_LIMIT'] = int(os.getenv('PAGINATION_DEFAULT_LIMIT', '50'))
    app.config['PAGINATION_MAX_LIMIT'] = int(os.getenv('PAGINATION_MAX_LIMIT', '200'))

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    app.logger.setLevel(app.config['LOG_LEVEL'])

    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .routes.auth import auth_bp
    from .routes.tickets import tkt_bp
    from .routes.devices import dev_bp
    from .routes.technicians import tech_bp
    from .routes.reports import rpt_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(tkt_bp, url_prefix='/tickets')
    app.register_blueprint(dev_bp, url_prefix='/devices')
    app.register_blueprint(tech_bp, url_prefix='/technicians')
    app.register_blueprint(rpt_bp, url_prefix='/reports')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            payload = {
                'error': {
                    'status': e.code,
                    'title': e.name,
                    'detail': e.description,
                }
            }
            reason = getattr(e, 'reason', None)
            if reason:
                payload['error']['reason'] = reason
            fields = getattr(e, 'fields', None)
            if fields:
                payload['error']['fields'] = fields
            return payload, e.code
        app.logger.exception('Unhandled exception')
        return {
            'error': {
                'status': 500,
                'title': 'Internal Server Error',
                'detail': 'Unexpected error'
            }
        }, 500

    return app


def get_db():
    return SessionLocal()
