"""
Shared constants used across all bench modules.

Centralises endpoints, default headers, and tunables so they live in
exactly one place.
"""

# ---------------------------------------------------------------------------
# HTTP headers (browser-like, required by Ookla servers)
# ---------------------------------------------------------------------------

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
)

COMMON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Origin": "https://www.speedtest.net",
    "Referer": "https://www.speedtest.net/",
}

# ---------------------------------------------------------------------------
# Speedtest.net endpoints
# ---------------------------------------------------------------------------

CONFIG_URL = "https://www.speedtest.net/speedtest-config.php"
CATALOG_URL = "https://www.speedtest.net/speedtest-servers-static.php"
CATALOG_MIRROR_URL = "https://c.speedtest.net/speedtest-servers-static.php"

REQUEST_TIMEOUT = 10.0           # seconds for catalog / config fetches

# ---------------------------------------------------------------------------
# Geography
# ---------------------------------------------------------------------------

EARTH_RADIUS_KM = 6378.137

# ---------------------------------------------------------------------------
# Connection limits
# ---------------------------------------------------------------------------

MIN_CONNECTIONS = 1
MAX_CONNECTIONS = 32
DEFAULT_CONNECTIONS = 4

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 8
DEFAULT_CONCURRENCY = 1          # targets benchmarked one at a time

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

DEFAULT_PING_COUNT = 10
MIN_PING_COUNT = 1
MAX_PING_COUNT = 100

DEFAULT_DURATION = 10.0          # seconds for download / upload
MIN_DURATION = 1.0
MAX_DURATION = 300.0

DEFAULT_PROBE_TIMEOUT = 60.0     # hard cap per probe, seconds
MIN_PROBE_TIMEOUT = 1.0
MAX_PROBE_TIMEOUT = 900.0

WARMUP_SECONDS = 2.0             # discard speed samples in this window
SAMPLE_INTERVAL = 0.25           # 250 ms between speed samples

# ---------------------------------------------------------------------------
# Data transfer
# ---------------------------------------------------------------------------

CHUNK_SIZE = 256 * 1024          # 256 KB read / write chunks
SAVING_CHUNK_SIZE = 64 * 1024
UPLOAD_BUFFER_SIZE = 1024 * 1024 # 1 MB pre-generated random buffer
SAVING_BUFFER_SIZE = 128 * 1024

WARMUP_IMAGE_SIZE = 1000         # random1000x1000.jpg for download warm-up
WARMUP_UPLOAD_BYTES = 1024 * 1024

# ---------------------------------------------------------------------------
# Speed filtering
# ---------------------------------------------------------------------------

MAX_REASONABLE_SPEED = 20_000.0  # 20 Gbps - anything above is a spike
