import os

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

DEFAULT_LIMITS = ["200 per hour", "50 per minute"]
LOGIN_LIMIT = "5 per minute;20 per hour"
WRITE_LIMIT = "30 per minute"

# Shared by the controllers; create_app binds it and can switch it off for tests
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=DEFAULT_LIMITS,
    storage_uri=os.getenv("LIMITER_STORAGE_URI", "memory://"),
)
