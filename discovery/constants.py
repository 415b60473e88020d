"""
Constants for the content discovery system.
"""

from pathlib import Path

MODULE_ROOT = Path(__file__).parent

DB_NAME = "discovery.db"

SOURCES_CONFIG_PATH = MODULE_ROOT / "data" / "sources.yaml"

# Upstream "code" value that marks a successful response
UPSTREAM_SUCCESS_CODE = 1

# Used when the upstream total is missing or implausible
DEFAULT_TOTAL_HINT = 100000

# Candidate ids are never drawn above this, whatever the upstream claims
SAMPLE_ID_CEILING = 100000

MAX_SAMPLE_ATTEMPTS = 20

# Negative record reasons
REASON_UNAVAILABLE = "unavailable"
REASON_INVALID = "invalid"
REASON_NOT_FOUND = "not found"
REASON_INCOMPLETE = "incomplete"

# Max length of a stored reason, matches the column size
MAX_REASON_LENGTH = 255
