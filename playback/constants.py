"""
Constants for the playback system.
"""

DB_NAME = "playback.db"

# Grammar delimiters, see playlist_parser.py
EPISODE_DELIMITER = "#"
SOURCE_DELIMITER = "$$$"
LABEL_DELIMITER = "$"

LINE_LABEL_TEMPLATE = "Line {n}"
EPISODE_TITLE_TEMPLATE = "Episode {n}"

# A saved position is offered for resume only beyond this (seconds of media time)
RESUME_THRESHOLD_SECONDS = 30

# Position is persisted every time this much media time has elapsed
POSITION_SAVE_INTERVAL_SECONDS = 10

# Tokens that mark a segmented (HLS) stream url
SEGMENTED_STREAM_TOKENS = ("m3u8",)

# Discovery retry policy after the sampler is exhausted
RETRY_BASE_DELAY_SECONDS = 2.0
RETRY_BACKOFF_FACTOR = 2.0
RETRY_MAX_DELAY_SECONDS = 30.0
MAX_DISCOVERY_RETRIES = 5

# Delay before fetching new content once a session runs out of episodes
EXHAUSTED_REFRESH_DELAY_SECONDS = 2.0

DEFAULT_VOLUME = 1.0
