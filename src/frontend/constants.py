"""Shared constants for the Textual UI."""

from __future__ import annotations

import os
from pathlib import Path

TWITTER_BLUE = "#1DA1F2"
PROJECT_ROOT = Path(__file__).resolve().parents[2]
CONFIG_PATH = Path(os.getenv("TWEETRELAY_CONFIG", str(PROJECT_ROOT / "config.json")))
DB_PATH = Path(os.getenv("TWEETRELAY_DB", str(PROJECT_ROOT / "tweetrelay.db")))
