import os
from dotenv import load_dotenv
from supabase import create_client, Client
import logging
import threading

# Initialize logger
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

# Global client instance with thread safety
_admin_client_instance = None
_client_lock = threading.Lock()


def _credentials(key_name):
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get(key_name)
    if not url or not key:
        logger.error(f"SUPABASE_URL and {key_name} must be set in environment variables")
        raise ValueError(f"SUPABASE_URL and {key_name} must be set in environment variables")
    return url, key


def get_supabase_admin_client() -> Client:
    """
    Returns a Supabase admin client instance using the service role key.
    Club writes go through this client since membership checks are enforced
    in the service layer rather than by row-level security. The same client
    verifies bearer tokens via ``auth.get_user``.
    """
    global _admin_client_instance
    url, service_key = _credentials("SUPABASE_SERVICE_ROLE_KEY")

    if _admin_client_instance is None:
        with _client_lock:
            if _admin_client_instance is None:
                try:
                    _admin_client_instance = create_client(url, service_key)
                    logger.info("Supabase admin client singleton created successfully")
                except Exception as e:
                    logger.error(f"Failed to create Supabase admin client: {e}")
                    raise

    return _admin_client_instance
