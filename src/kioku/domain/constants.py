"""Centralized constants for the kioku progress engine.

All thresholds and scheduling defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Mastery classification ----------
MASTERED_MIN_ATTEMPTS = 5
MASTERED_MIN_ACCURACY = 0.90
FAMILIAR_MIN_ATTEMPTS = 3
FAMILIAR_MIN_ACCURACY = 0.70

# ---------- Display badge ("is_mastered") ----------
BADGE_MIN_ATTEMPTS = 3
BADGE_MIN_ACCURACY = 0.80

# ---------- Review intervals (hours) ----------
NEW_INTERVAL_HOURS = 1
LEARNING_BASE_HOURS = 4
FAMILIAR_BASE_HOURS = 24
MASTERED_BASE_HOURS = 72

# ---------- Answer evaluation ----------
FILL_IN_SIMILARITY_THRESHOLD = 0.85
DEFAULT_SCORE_THRESHOLD = 85.0
MAX_SCORE = 100.0

# ---------- Store / service ----------
DEFAULT_MAX_SAVE_RETRIES = 3
DEFAULT_REVIEW_LIMIT = 20
CROSS_DECK_REVIEW_LIMIT = 50
RECENT_DECKS_LIMIT = 10
