import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME, LOG_DIR_NAME

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = BASE_DIR / DATA_DIR

# env overrides let tests and deployments point somewhere else
DB_PATH = Path(os.getenv("JAGGERY_LEDGER_DB") or (DATA_PATH / DB_FILE_NAME))
LOG_DIR = Path(os.getenv("JAGGERY_LEDGER_LOG_DIR") or (BASE_DIR / LOG_DIR_NAME))
