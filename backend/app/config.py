import os
from pathlib import Path

from tourist_safety.snapshot import BUNDLED_DATA_DIR

DATA_DIR = Path(os.getenv("DATA_DIR", str(BUNDLED_DATA_DIR)))
PLAYBACK_INTERVAL_SECONDS = float(os.getenv("PLAYBACK_INTERVAL_SECONDS", "1.5"))
OPERATOR_NAME = os.getenv("OPERATOR_NAME", "Officer")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
