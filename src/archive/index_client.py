"""
Archive index client.

Resolves a calendar month to a web-archive index and performs paginated
lookups of every captured page stored under a domain.
"""

import json
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

import requests

from settings import (
    ARCHIVE_INDEX_URL, ARCHIVE_DEFAULT_INDEX, ARCHIVE_INDEX_MAP_PATH, HTTP_TIMEOUT, USER_AGENT,
    INDEX_PAGE_SIZE, INDEX_MAX_RESULTS, INDEX_PAGE_DELAY
)
from .months import validate_month

# Month -> archive index. Archive crawls are not monthly, so several months
# share the closest index.
INDEX_MAP = {
    '2024-01': 'CC-MAIN-2024-10',
    '2024-02': 'CC-MAIN-2024-10',
    '2024-03': 'CC-MAIN-2024-10',
    '2024-04': 'CC-MAIN-2024-18',
    '2024-05': 'CC-MAIN-2024-18',
    '2024-06': 'CC-MAIN-2024-26',
    '2024-07': 'CC-MAIN-2024-33',
    '2024-08': 'CC-MAIN-2024-33',
    '2024-09': 'CC-MAIN-2024-38',
    '2024-10': 'CC-MAIN-2024-42',
    '2024-11': 'CC-MAIN-2024-46',
    '2024-12': 'CC-MAIN-2024-51',
    '2025-01': 'CC-MAIN-2025-04',
    '2025-02': 'CC-MAIN-2025-09',
}


@dataclass
class IndexRecord:
    """Location of one captured page inside an archive container."""
    filename: str
    offset: int
    length: int
    url: str
    timestamp: Optional[str] = None
    status: Optional[str] = None
    mime: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict) -> 'IndexRecord':
        """
        Build a record from an index JSON object.

        Raises:
            KeyError, ValueError, TypeError: If required fields are missing or malformed
        """
        return cls(
            filename=data['filename'],
            offset=int(data['offset']),
            length=int(data['length']),
            url=data['url'],
            timestamp=data.get('timestamp'),
            status=data.get('status'),
            mime=data.get('mime')
        )


def load_index_map(path: Optional[str] = None) -> Dict[str, str]:
    """
    Built-in month table merged with an optional JSON override file.

    Args:
        path: JSON file mapping 'YYYY-MM' to index ids (defaults to ARCHIVE_INDEX_MAP_PATH)

    Raises:
        ValueError: If the override file is not a JSON object of strings
    """
    index_map = dict(INDEX_MAP)
    path = path or ARCHIVE_INDEX_MAP_PATH
    if not path:
        return index_map

    with open(Path(path), encoding='utf-8') as f:
        overrides = json.load(f)

    if not isinstance(overrides, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in overrides.items()
    ):
        raise ValueError(f"Index map file {path} must contain a JSON object of 'YYYY-MM': 'index-id' strings")

    for month in overrides:
        validate_month(month)

    index_map.update(overrides)
    return index_map


def resolve_index_id(year_month: str, index_map: Optional[Dict[str, str]] = None,
                     default: str = None) -> str:
    """
    Map a 'YYYY-MM' month to an archive index id.

    Unknown months fall back to the default index on purpose.

    Raises:
        ValueError: If year_month is not a valid month string
    """
    validate_month(year_month)
    index_map = INDEX_MAP if index_map is None else index_map
    return index_map.get(year_month, default or ARCHIVE_DEFAULT_INDEX)


def parse_index_response(text: str) -> List[Dict]:
    """
    Parse an index response body (JSON lines or a JSON array).

    Unparseable lines are skipped.
    """
    text = (text or '').strip()
    if not text:
        return []

    if text.startswith('['):
        try:
            items = json.loads(text)
            return [item for item in items if isinstance(item, dict)]
        except json.JSONDecodeError as e:
            print(f"Warning: Could not parse index response: {e}", file=sys.stderr)
            return []

    items = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            item = json.loads(line)
        except json.JSONDecodeError:
            print(f"Warning: Skipping unparseable index line: {line[:80]}", file=sys.stderr)
            continue
        if isinstance(item, dict):
            items.append(item)
    return items


class ArchiveIndexClient:
    """Paginated domain lookups against the archive index service."""

    def __init__(
        self,
        base_url: str = None,
        index_map: Optional[Dict[str, str]] = None,
        default_index: str = None,
        page_size: int = None,
        max_results: int = None,
        page_delay: float = None,
        timeout: float = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.base_url = (base_url or ARCHIVE_INDEX_URL).rstrip('/')
        self.index_map = index_map if index_map is not None else load_index_map()
        self.default_index = default_index or ARCHIVE_DEFAULT_INDEX
        self.page_size = page_size or INDEX_PAGE_SIZE
        self.max_results = max_results or INDEX_MAX_RESULTS
        self.page_delay = INDEX_PAGE_DELAY if page_delay is None else page_delay
        self.timeout = timeout or HTTP_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.setdefault('User-Agent', USER_AGENT)
        self.sleep = sleep

    def resolve(self, year_month: str) -> str:
        """Index id for a month."""
        return resolve_index_id(year_month, self.index_map, self.default_index)

    def fetch_page(self, index_id: str, domain: str, offset: int) -> Optional[List[Dict]]:
        """
        Fetch one page of index results.

        Returns:
            List of raw index objects, or None if the request failed
        """
        url = f"{self.base_url}/{index_id}-index"
        params = {
            'url': f"{domain}/*",
            'output': 'json',
            'limit': self.page_size,
            'offset': offset,
        }
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            print(f"Archive index request error for {domain} ({index_id}): {e}", file=sys.stderr)
            return None

        if not response.ok:
            print(f"Archive index error for {domain} ({index_id}): HTTP {response.status_code}", file=sys.stderr)
            return None

        return parse_index_response(response.text)

    def search(self, domain: str, year_month: str) -> List[IndexRecord]:
        """
        Find captured pages stored under a domain for a month.

        Pagination stops at the first failed or empty page, or at a short page;
        records accumulated so far are kept.

        Returns:
            Up to max_results IndexRecord objects
        """
        index_id = self.resolve(year_month)
        records: List[IndexRecord] = []
        offset = 0

        while offset < self.max_results:
            items = self.fetch_page(index_id, domain, offset)
            if not items:
                break

            for item in items:
                try:
                    records.append(IndexRecord.from_dict(item))
                except (KeyError, ValueError, TypeError):
                    continue

            if len(items) < self.page_size:
                break
            offset += self.page_size

            if offset < self.max_results:
                self.sleep(self.page_delay)

        return records[:self.max_results]

    def list_available_indexes(self) -> List[str]:
        """
        Ids of all indexes published by the archive, newest first.

        Returns:
            List of index ids, or an empty list if the listing can't be fetched
        """
        try:
            response = self.session.get(f"{self.base_url}/collinfo.json", timeout=self.timeout)
            response.raise_for_status()
            return [item['id'] for item in response.json() if isinstance(item, dict) and 'id' in item]
        except (requests.RequestException, ValueError, TypeError) as e:
            print(f"Failed to fetch archive index list: {e}", file=sys.stderr)
            return []
