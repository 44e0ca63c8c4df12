"""Centralized constants for the memtrack package.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Sync ----------
AUTO_REFRESH_INTERVAL = 30.0  # seconds
REQUEST_TIMEOUT = 10.0
SUBSCRIPTION_SNAPSHOT_LIMIT = 500

# ---------- Storage keys ----------
CACHE_KEY_PREFIX = "gameSessions_"  # process-local cache, per user
DURABLE_KEY_PREFIX = "gameSessions:"  # durable fallback store, per user
LEGACY_DURABLE_KEY = "gameSessions"

# ---------- Time buckets ----------
WEEK_BUCKET_DAYS = 8
MONTH_BUCKET_COUNT = 5
RECENT_BUCKET_DAYS = 7
ROLLING_WEEK_DAYS = 7
ROLLING_MONTH_DAYS = 30

# ---------- Views ----------
RECENT_SESSIONS_LIMIT = 20
NO_DATA_LABEL = "No Data"
NO_ACTIVITY_TODAY_LABEL = "No Activity Today"

# ---------- Insights ----------
EXCELLENT_ACCURACY = 80
GOOD_ACCURACY = 60
FAIR_ACCURACY = 40
SLOW_CARD_SECONDS = 10
