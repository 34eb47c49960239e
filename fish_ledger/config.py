import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = Path(os.environ.get("FISH_LEDGER_DATA_DIR") or (BASE_DIR / DATA_DIR))
DB_PATH = Path(os.environ.get("FISH_LEDGER_DB") or (DATA_PATH / DB_FILE_NAME))
