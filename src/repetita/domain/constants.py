"""Centralized constants for Repetita.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Quality scale ----------
MIN_QUALITY = 0
MAX_QUALITY = 5
SUCCESS_THRESHOLD = 3  # quality >= 3 is a successful recall

# Study UI buttons
QUALITY_HARD = 1
QUALITY_NORMAL = 3
QUALITY_EASY = 5

# ---------- SM-2 ----------
INITIAL_EASINESS = 2.5
MIN_EASINESS = 1.3
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
LAPSE_INTERVAL_DAYS = 1

# ---------- Mastery ----------
MASTERY_REPETITIONS = 3
MASTERY_MIN_EASINESS = 1.8

# ---------- Sessions ----------
DEFAULT_SESSION_LIMIT = 20

# ---------- Server ----------
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8777

# ---------- Storage ----------
CHUNK_SIZE = 500
