"""
Byte-range retrieval of archived pages.
"""

import gzip
import re
import sys
import zlib
from typing import Optional

import requests

from settings import ARCHIVE_DATA_URL, HTTP_TIMEOUT, USER_AGENT
from .index_client import IndexRecord

HTML_PATTERN = re.compile(r'<html[\s\S]*?</html>', re.IGNORECASE)
GZIP_MAGIC = b'\x1f\x8b'


def extract_html(content: str) -> Optional[str]:
    """First <html>...</html> span of an archive record, or None."""
    if not content:
        return None
    match = HTML_PATTERN.search(content)
    return match.group(0) if match else None


def decode_record(payload: bytes) -> str:
    """Decode a record payload, decompressing gzip members when present."""
    if payload.startswith(GZIP_MAGIC):
        try:
            payload = gzip.decompress(payload)
        except (OSError, EOFError, zlib.error) as e:
            print(f"Warning: Could not decompress archive record: {e}", file=sys.stderr)
    return payload.decode('utf-8', errors='replace')


class ContentFetcher:
    """Reads single records out of archive containers with HTTP range requests."""

    def __init__(self, base_url: str = None, timeout: float = None,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or ARCHIVE_DATA_URL).rstrip('/')
        self.timeout = timeout or HTTP_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.setdefault('User-Agent', USER_AGENT)

    def fetch_range(self, filename: str, offset: int, length: int) -> Optional[bytes]:
        """
        Read bytes offset..offset+length-1 of a container.

        Returns:
            Raw bytes, or None on a non-2xx response or transport error
        """
        offset = int(offset)
        length = int(length)
        headers = {'Range': f"bytes={offset}-{offset + length - 1}"}
        try:
            response = self.session.get(f"{self.base_url}/{filename}", headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            print(f"Archive fetch error for {filename}: {e}", file=sys.stderr)
            return None

        if not response.ok:
            print(f"Archive fetch error for {filename}: HTTP {response.status_code}", file=sys.stderr)
            return None

        return response.content

    def fetch(self, record: IndexRecord) -> Optional[str]:
        """
        Page markup of an index record.

        Returns:
            The first <html>...</html> span, or None if the record couldn't be
            read or contains no markup
        """
        payload = self.fetch_range(record.filename, record.offset, record.length)
        if payload is None:
            return None
        return extract_html(decode_record(payload))
