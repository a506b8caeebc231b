"""Application configuration constants."""

# Upstream provider (Open Exchange Rates)
OER_DEFAULT_BASE_URL = "https://openexchangerates.org/api"
OER_API_KEY_ENV = "OPEN_EXCHANGE_RATES_API_KEY"
OER_BASE_URL_ENV = "OER_BASE_URL"
UPSTREAM_TIMEOUT_SECONDS = 10
USER_AGENT = "fxconv/0.1.0"

# Free plan quotes every rate against USD
BASE_CURRENCY = "USD"
RATES_SOURCE = "openexchangerates"

# Result cache
RATES_CACHE_KEY = "latest_rates"
HISTORICAL_CACHE_KEY_PREFIX = "historical_rates"
DEFAULT_CACHE_TTL_HOURS = 1.0
RATES_CACHE_TTL_HOURS = 1.0
HISTORICAL_CACHE_TTL_HOURS = 24.0

# Domain store retention (hours)
RATE_SNAPSHOT_TTL_HOURS = 1.0
HISTORY_TTL_HOURS = 24.0
USAGE_TTL_HOURS = 24.0

# Retry/backoff defaults (milliseconds)
RETRY_MAX_ATTEMPTS = 3
RETRY_BASE_DELAY_MS = 1000
RETRY_MAX_DELAY_MS = 10000
RETRY_BACKOFF_FACTOR = 2.0
RETRY_JITTER_RATIO = 0.1  # up to 10% of the exponential delay
RATES_RETRY_MAX_DELAY_MS = 5000  # rate fetches give up waiting sooner

# Conversion precision
RATE_DECIMAL_PLACES = 4

# Background maintenance
CLEANUP_INTERVAL_MINUTES = 15
