import os

def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val


def _int_env(name, default):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

SUPPORTED_SPORTS = ("football", "basketball")
DEFAULT_SPORT = (os.getenv("DEFAULT_SPORT") or "football").strip().lower()

# Authoritative rating bounds, shared by the registry and request schemas.
RATING_MIN = _int_env("RATING_MIN", 1000)
RATING_MAX = _int_env("RATING_MAX", 2000)
DEFAULT_RATING = _int_env("DEFAULT_RATING", 1500)

MAX_NAME_LENGTH = 50
MAX_SCORE = _int_env("MAX_SCORE", 999)
