from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import os
from hr_ops.logger import get_logger

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"],
    storage_uri="memory://"  # Use Redis in production for distributed systems
)


def _env_int(name, default):
    return int(os.environ.get(name, str(default)))


def create_app(test_config=None):
    from pathlib import Path

    app = Flask(__name__)

    # Get singleton logger
    logger = get_logger("hr_ops")
    logger.info("Initializing Flask application")

    # SECURITY: Require SECRET_KEY in environment - no fallback
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY')

    base_dir = Path(__file__).parent.parent
    instance_dir = base_dir / 'instance'
    db_url = os.environ.get('DATABASE_URL')
    if not db_url:
        instance_dir.mkdir(parents=True, exist_ok=True)
        default_db_path = instance_dir / 'hr_ops.db'
        db_url = f"sqlite:///{str(default_db_path.resolve())}"
    app.config['SQLALCHEMY_DATABASE_URI'] = db_url
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Store interaction bounds
    app.config['STORE_TIMEOUT_SECONDS'] = _env_int('STORE_TIMEOUT_SECONDS', 10)
    app.config['MAX_CONFLICT_RETRIES'] = _env_int('MAX_CONFLICT_RETRIES', 3)

    # Account lockout policy
    app.config['MAX_FAILED_LOGIN_ATTEMPTS'] = _env_int('MAX_FAILED_LOGIN_ATTEMPTS', 5)
    app.config['ACCOUNT_LOCKOUT_MINUTES'] = _env_int('ACCOUNT_LOCKOUT_MINUTES', 120)

    # Asset defaults
    app.config['DEFAULT_DEPRECIATION_RATE'] = _env_int('DEFAULT_DEPRECIATION_RATE', 20)
    app.config['DEFAULT_CURRENCY'] = os.environ.get('DEFAULT_CURRENCY', 'INR')

    if test_config:
        app.config.update(test_config)

    if not app.config['SECRET_KEY']:
        logger.critical("SECRET_KEY not set in environment! Application cannot start.")
        raise RuntimeError("SECRET_KEY environment variable is required")

    # Bounded waits on the store: a timeout surfaces as ResourceUnavailable
    timeout = app.config['STORE_TIMEOUT_SECONDS']
    engine_options = dict(app.config.get('SQLALCHEMY_ENGINE_OPTIONS') or {})
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
        connect_args = dict(engine_options.get('connect_args') or {})
        connect_args.setdefault('timeout', timeout)
        connect_args.setdefault('check_same_thread', False)
        engine_options['connect_args'] = connect_args
        if ':memory:' not in app.config['SQLALCHEMY_DATABASE_URI'] and app.config['SQLALCHEMY_DATABASE_URI'] != 'sqlite://':
            engine_options.setdefault('pool_timeout', timeout)
    else:
        engine_options.setdefault('pool_timeout', timeout)
        engine_options.setdefault('pool_pre_ping', True)
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = engine_options

    logger.debug(f"Database configured: {app.config['SQLALCHEMY_DATABASE_URI'].split(':', 1)[0]}")

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    logger.debug("Extensions initialized")

    # Import models to ensure they're registered with SQLAlchemy
    from hr_ops.data.core.sequence_counter import SequenceCounter
    from hr_ops.data.core.user_info.user import User
    from hr_ops.data.requisitions.job_posting import JobPosting, JobPostingWorkflowEntry
    from hr_ops.data.assets.asset import Asset, AssetStatusEntry, AssetMaintenanceRecord

    logger.debug("Models imported and registered")

    from hr_ops.auth import auth
    app.register_blueprint(auth)

    from hr_ops.buisness.core.errors import LifecycleDomainError

    @app.errorhandler(LifecycleDomainError)
    def handle_domain_error(error):
        """Render domain failures with the entity, action and unchanged status"""
        return jsonify(error.to_dict()), error.http_status

    logger.info("Flask application initialization complete")

    return app
