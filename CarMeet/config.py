"""
Environment driven configuration for the CarMeet API
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_flag(name, default='false'):
    return os.environ.get(name, default).lower() == 'true'


class Config:
    """Settings read from the environment at app creation time"""

    def __init__(self, **overrides):
        self.SUPABASE_URL = os.environ.get('SUPABASE_URL')
        self.SUPABASE_SERVICE_ROLE_KEY = os.environ.get('SUPABASE_SERVICE_ROLE_KEY')

        # Prefer REDIS_URL, fallback to REDIS_TLS_URL (Heroku names this when SSL required)
        self.REDIS_URL = os.environ.get('REDIS_URL') or os.environ.get('REDIS_TLS_URL')

        self.SENTRY_DSN = os.environ.get('SENTRY_DSN')
        self.FLASK_ENV = os.environ.get('FLASK_ENV', 'production')
        self.VERBOSE_LOGS = _env_flag('VERBOSE_LOGS')
        self.DISABLE_RATE_LIMITING = _env_flag('DISABLE_RATE_LIMITING')

        origins = os.environ.get('CORS_ALLOWED_ORIGINS', 'https://carmeet.app,https://www.carmeet.app')
        self.CORS_ALLOWED_ORIGINS = [origin.strip() for origin in origins.split(',') if origin.strip()]

        self.VIEW_CACHE_TTL_SECONDS = int(os.environ.get('VIEW_CACHE_TTL_SECONDS', 300))

        for key, value in overrides.items():
            setattr(self, key, value)

    @property
    def is_development(self):
        return self.FLASK_ENV == 'development'

    def as_flask_config(self):
        """Upper-case attributes in the shape Flask's app.config expects"""
        return {key: value for key, value in vars(self).items() if key.isupper()}
