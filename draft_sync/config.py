"""
Configuration constants for live draft synchronization and inflation tracking.
"""

# League Settings
NUM_TEAMS = 12
BUDGET_PER_TEAM = 260
TOTAL_BUDGET = NUM_TEAMS * BUDGET_PER_TEAM  # $3120

# Per-team roster template
HITTER_SLOTS = ['C', '1B', '2B', '3B', 'SS', 'OF', 'OF', 'OF', 'UTIL']
PITCHER_SLOTS = ['SP', 'SP', 'SP', 'SP', 'SP', 'RP', 'RP', 'RP', 'RP']
BENCH_SLOTS = 5
ROSTER_SIZE = len(HITTER_SLOTS) + len(PITCHER_SLOTS) + BENCH_SLOTS  # 23

# Slot names that are not player positions
UTIL_SLOT = 'UTIL'
BENCH_SLOT = 'BN'
PITCHER_SLOT_POSITIONS = ['SP', 'RP']

# ===== INFLATION CONFIGURATION =====

# Canonical positions tracked by the inflation engine (UT covers DH/flex)
POSITIONS = ['C', '1B', '2B', 'SS', '3B', 'OF', 'SP', 'RP', 'UT']

# Tier percentile thresholds (percent of the projection pool above a player)
ELITE_TIER_PERCENTILE = 10
MID_TIER_PERCENTILE = 40

# Budget depletion multiplier bounds
BUDGET_DEPLETION_MIN_MULTIPLIER = 0.1
BUDGET_DEPLETION_MAX_MULTIPLIER = 2.0

# Debounce window for coalescing ledger mutations into one recompute
INFLATION_DEBOUNCE_MS = 50

# Performance
TARGET_INFLATION_TIME = 0.1  # seconds for a full recompute

# Trend indicators
TREND_WINDOW_PICKS = 10
TREND_THRESHOLD_POINTS = 2.0  # percentage points

# ===== SYNC CONFIGURATION =====

# Exponential backoff: min(5000 * 2^failures, 20000)
RETRY_BASE_DELAY_MS = 5000
RETRY_MAX_DELAY_MS = 20000

# Consecutive transient failures before manual mode kicks in
MANUAL_MODE_FAILURE_THRESHOLD = 3

# Picks applied in one pass that count as a catch-up sync
CATCH_UP_NOTIFICATION_THRESHOLD = 3

# Soft timeout for a single sync call (warn only, never cancels)
SYNC_SOFT_TIMEOUT_SECONDS = 15

# Polling
DEFAULT_SYNC_INTERVAL_MINUTES = 20

# Draft room feed
DRAFT_ROOM_BASE_URL = "https://draft-room.example.com/api"
DRAFT_ROOM_REQUEST_TIMEOUT = 30  # seconds, longer than SYNC_SOFT_TIMEOUT_SECONDS

# Minimum fuzzywuzzy score to accept a player name match
FUZZY_MATCH_MIN_SCORE = 90

# Logging
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# ===== API SERVER CONFIGURATION =====

API_HOST = '127.0.0.1'
API_PORT = 8000
