import os
from pathlib import Path

REPO_ROOT = Path(__file__).parent.parent

# Upstream indexes reject requests without a browser-ish agent
HTTP_USER_AGENT = "Mozilla/5.0 (compatible; ContentManager/1.0)"

HTTP_TIMEOUT_SECONDS = 10

# Overrides the bundled source configuration file when set
SOURCES_PATH_ENV_VAR = "DISCOVERY_SOURCES_PATH"

PROXY_ENDPOINT = os.environ.get("PLAYBACK_PROXY_ENDPOINT", "")
