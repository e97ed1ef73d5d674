"""Constants for Inbox Declutter."""

import os
from pathlib import Path

# --- Config paths ---
CONFIG_DIR = Path(os.getenv("INBOX_DECLUTTER_HOME", Path.home() / ".inbox-declutter"))
CREDENTIALS_PATH = CONFIG_DIR / "credentials.json"
TOKEN_PATH = CONFIG_DIR / "token.json"
TRUST_DB_PATH = CONFIG_DIR / "trusted.db"

# --- Gmail API ---
SCOPES = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.settings.basic",
]
PAGE_SIZE = 500  # messages per list page
MODIFY_BATCH_SIZE = 1000  # messages per batchModify call
METADATA_HEADERS = ["From", "Subject", "Date"]

# --- Scanning ---
TARGET_COUNT = 1000  # messages in the working set
WAVE_SIZE = 25  # metadata fetches per sub-batch
WAVE_DELAY = 0.4  # seconds between sub-batches
FATIGUE_LIMIT = 5  # consecutive waves with nothing new before giving up on a category
INBOX_QUERY = "in:inbox"
CATEGORY_ORDER = ["primary", "updates", "promotions", "social"]
CATCH_ALL = "inbox"

# --- Labels ---
CATEGORY_LABELS = {
    "CATEGORY_PERSONAL": "primary",
    "CATEGORY_UPDATES": "updates",
    "CATEGORY_PROMOTIONS": "promotions",
    "CATEGORY_SOCIAL": "social",
}

# --- Clustering ---
COMPOUND_SUFFIXES = {
    "co.uk",
    "org.uk",
    "ac.uk",
    "com.au",
    "net.au",
    "co.jp",
    "com.br",
    "co.nz",
    "co.in",
    "co.za",
}
ROOT_MERGE_MIN_SENDERS = 5
FILTER_THRESHOLD = 10
ARCHIVE_THRESHOLD = 5  # automated clusters below this are archived outright
PERSONAL_FILTER_THRESHOLD = 20
PERSONAL_LABEL_THRESHOLD = 10
MIN_SUGGESTION_COUNT = 5

# --- Count reconciliation ---
TOP_SUGGESTIONS = 5
TOP_CLUSTERS = 10
EXACT_COUNT_CAP = 500
RECONCILE_DELAY = 0.1
