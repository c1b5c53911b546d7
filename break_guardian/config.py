import os

APP_TITLE = "Break Guardian"
APPDATA_DIR = os.path.join(os.getenv("APPDATA") or os.path.expanduser("~"), "BreakGuardian")

SETTINGS_FILE = os.path.join(APPDATA_DIR, "settings.json")

LOG_DIR = os.path.join(APPDATA_DIR, "logs")
LOG_FILE = os.path.join(LOG_DIR, "break_guardian.log")
LOGGER_NAME = "BreakGuardian"

TICK_INTERVAL_SEC = 1.0
MIN_BREAK_DURATION_MS = 1000

BREAK_NOTIFICATION_TITLE = "Time for a break!"
IDLE_NOTIFICATION_TITLE = "Break automatically detected"

# A break counts as taken once at least this share of its length elapsed
BREAK_COMPLETION_RATIO = 0.5

# --test
TEST_BREAK_FREQUENCY_SEC = 30
TEST_BREAK_LENGTH_SEC = 10
TEST_POSTPONE_LENGTH_SEC = 10

# Sound synthesis
SAMPLE_RATE = 44100
MAX_ATTACHMENT_BYTES = 4 * 1024 * 1024
