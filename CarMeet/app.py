import logging
import sys

from flask import Flask, jsonify
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.middleware.proxy_fix import ProxyFix

from CarMeet.config import Config
from CarMeet.supabase_client import get_supabase_admin_client
from CarMeet.services.container import ClubServices, EXTENSION_KEY
from CarMeet.services.redis_cache_service import get_cache_service, set_cache_service
from CarMeet.api.auth import load_user
from CarMeet.api.clubs import clubs_bp
from CarMeet.api.inbox import inbox_bp

logger = logging.getLogger(__name__)

DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8080",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:8080",
]


def configure_logging(config):
    # Always show errors; VERBOSE_LOGS=true shows INFO in staging/dev
    log_level = logging.ERROR
    if config.VERBOSE_LOGS:
        log_level = logging.INFO
    elif config.is_development:
        log_level = logging.DEBUG

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # Reduce log volume from chatty libraries
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def init_sentry(config):
    """Sentry error tracking, production only"""
    if not config.SENTRY_DSN or config.is_development:
        logger.info("Sentry not initialized (development mode or missing DSN)")
        return False

    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    sentry_logging = LoggingIntegration(
        level=logging.ERROR,        # Capture ERROR and above
        event_level=logging.ERROR   # Send ERROR and above as events
    )
    sentry_sdk.init(
        dsn=config.SENTRY_DSN,
        integrations=[
            FlaskIntegration(transaction_style='endpoint'),
            sentry_logging,
        ],
        traces_sample_rate=0.1,
        environment=config.FLASK_ENV,
    )
    logger.info("Sentry initialized for error tracking")
    return True


def init_limiter(app, config):
    storage_uri = config.REDIS_URL or 'memory://'
    if storage_uri.startswith('rediss://'):
        storage_uri += '?ssl_cert_reqs=none'

    if config.DISABLE_RATE_LIMITING:
        app.logger.warning("LOAD TESTING MODE: Rate limiting is DISABLED")
        default_limits = []
    else:
        default_limits = ["50000 per day", "20000 per hour"]

    return Limiter(
        get_remote_address,
        app=app,
        default_limits=default_limits,
        storage_uri=storage_uri,
        strategy="fixed-window",
        swallow_errors=True
    )


def create_app(config=None, supabase_client=None, cache_service=None):
    """Build the CarMeet API; clients may be injected for tests"""
    config = config or Config()
    configure_logging(config)
    init_sentry(config)

    app = Flask(__name__)
    app.config.update(config.as_flask_config())
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    allowed_origins = list(config.CORS_ALLOWED_ORIGINS)
    if config.is_development:
        allowed_origins.extend(DEV_ORIGINS)
    CORS(app, resources={r"/api/*": {"origins": allowed_origins}})

    init_limiter(app, config)

    supabase_admin = supabase_client or get_supabase_admin_client()
    if cache_service is not None:
        set_cache_service(cache_service)
    else:
        cache_service = get_cache_service()

    app.extensions['supabase_admin'] = supabase_admin
    app.extensions[EXTENSION_KEY] = ClubServices(
        supabase_admin,
        cache_service=cache_service,
        view_ttl_seconds=config.VIEW_CACHE_TTL_SECONDS,
    )

    app.before_request(load_user)
    app.register_blueprint(clubs_bp, url_prefix='/api')
    app.register_blueprint(inbox_bp, url_prefix='/api')

    @app.route('/health')
    def health():
        return jsonify({
            'status': 'ok',
            'cache': cache_service.is_connected(),
        })

    logger.info("Application initialized successfully! All API endpoints registered.")
    return app
