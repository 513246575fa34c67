"""
Web archive access: index lookups and byte-range content retrieval.
"""

from .months import validate_month, month_window, representative_date
from .index_client import ArchiveIndexClient, IndexRecord, INDEX_MAP, load_index_map, resolve_index_id
from .content_fetcher import ContentFetcher, extract_html

__all__ = ['validate_month', 'month_window', 'representative_date', 'ArchiveIndexClient', 'IndexRecord',
           'INDEX_MAP', 'load_index_map', 'resolve_index_id', 'ContentFetcher', 'extract_html']
