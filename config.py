"""
Metrolog 設定ファイル
Configuration for the measurement log ingestion & query engine.

Every value can be overridden with a METROLOG_* environment variable.
"""
import os

# ── データディレクトリ ──
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.environ.get("METROLOG_DATA_DIR", os.path.join(BASE_DIR, "data"))
DATABASE_PATH = os.path.join(DATA_DIR, "logs.db")

# ── Database 設定 ──
SQLALCHEMY_DATABASE_URI = os.environ.get(
    "METROLOG_DATABASE_URI", f"sqlite:///{DATABASE_PATH}"
)
SQLALCHEMY_ECHO = os.environ.get("METROLOG_SQL_ECHO", "0") == "1"
SQLITE_JOURNAL_MODE = "WAL"

# ── Query 設定 ──
DEFAULT_PAGE_SIZE = 50
TOP_ERRORS_LIMIT = 10

# ── Logging 設定 ──
LOG_LEVEL = os.environ.get("METROLOG_LOG_LEVEL", "INFO")
LOG_JSON = os.environ.get("METROLOG_LOG_JSON", "0") == "1"
