"""
Runtime configuration for the citation analyzer.

Values come from the environment, after loading a .env file at the project
root with python-dotenv. Modules read the constants they need at import.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).parent.parent / '.env')


def get_setting(key: str, default=None):
    """Environment value for key, or default when unset or blank."""
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def _int(key: str, default: int) -> int:
    return int(get_setting(key, default))


def _float(key: str, default: float) -> float:
    return float(get_setting(key, default))


# Classifier
OPENAI_API_KEY = get_setting('OPENAI_API_KEY')
OPENAI_MODEL = get_setting('OPENAI_MODEL', 'gpt-5-nano')
OPENAI_MAX_RETRIES = _int('OPENAI_MAX_RETRIES', 3)
OPENAI_TIMEOUT = _int('OPENAI_TIMEOUT', 120)

# SQLite file holding jobs, citations, rollups, crawl cache and call logs
DATABASE_PATH = get_setting('DATABASE_PATH', 'data/citations.db')

# Web archive endpoints
ARCHIVE_INDEX_URL = get_setting('ARCHIVE_INDEX_URL', 'https://index.commoncrawl.org')
ARCHIVE_DATA_URL = get_setting('ARCHIVE_DATA_URL', 'https://data.commoncrawl.org')
ARCHIVE_DEFAULT_INDEX = get_setting('ARCHIVE_DEFAULT_INDEX', 'CC-MAIN-2024-10')
# Optional JSON file {"YYYY-MM": "CC-MAIN-..."} merged over the built-in index table
ARCHIVE_INDEX_MAP_PATH = get_setting('ARCHIVE_INDEX_MAP_PATH')

# Outbound HTTP
HTTP_TIMEOUT = _float('HTTP_TIMEOUT', 10)
USER_AGENT = get_setting('USER_AGENT', 'Mozilla/5.0 (compatible; Citation-Analyzer/1.0)')

# Pacing between upstream calls (seconds)
INDEX_PAGE_DELAY = _float('INDEX_PAGE_DELAY', 0.1)
RECORD_FETCH_DELAY = _float('RECORD_FETCH_DELAY', 0.2)
CLASSIFIER_DELAY = _float('CLASSIFIER_DELAY', 0.5)

# Cost bounds
INDEX_PAGE_SIZE = _int('INDEX_PAGE_SIZE', 100)
INDEX_MAX_RESULTS = _int('INDEX_MAX_RESULTS', 1000)
MAX_RECORDS_PER_MONTH = _int('MAX_RECORDS_PER_MONTH', 10)
SENTIMENT_SAMPLE_LIMIT = _int('SENTIMENT_SAMPLE_LIMIT', 30)
TOPIC_SAMPLE_LIMIT = _int('TOPIC_SAMPLE_LIMIT', 20)

# Background job workers
JOB_WORKERS = _int('JOB_WORKERS', 4)
