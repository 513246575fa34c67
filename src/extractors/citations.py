"""
Citation extraction from archived page markup.

Finds hyperlinks pointing at a target domain and bare-text mentions of it,
each with the text surrounding it. Extraction is pure: nothing is persisted
and malformed markup never raises.
"""

import re
import sys
from dataclasses import dataclass, asdict
from typing import List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from db.models import CitationType

LINK_PATTERN = re.compile(r'<a\b[^>]*?href=["\']([^"\']*)["\'][^>]*>(.*?)</a>', re.IGNORECASE | re.DOTALL)
TAG_PATTERN = re.compile(r'<[^>]+>')
NOFOLLOW_PATTERN = re.compile(r'\brel\s*=\s*["\'][^"\']*\bnofollow\b', re.IGNORECASE)
WHITESPACE_PATTERN = re.compile(r'\s+')

LINK_CONTEXT_CHARS = 200
MENTION_CONTEXT_CHARS = 100


@dataclass
class CitationDraft:
    """A citation found in page markup, not yet persisted."""
    citation_type: CitationType
    citation_text: str
    source_url: str
    context_before: str = ''
    context_after: str = ''
    anchor_text: Optional[str] = None
    target_url: Optional[str] = None
    is_dofollow: Optional[bool] = None

    @property
    def context(self) -> str:
        """Surrounding text joined around the citation itself."""
        return f"{self.context_before or ''} {self.citation_text or ''} {self.context_after or ''}"

    def to_dict(self) -> dict:
        data = asdict(self)
        data['citation_type'] = self.citation_type.value
        return data


def extract_domain(url: str) -> str:
    """
    Host name of a URL without a leading 'www.'.

    Returns:
        The domain, or '' if the URL can't be parsed
    """
    try:
        hostname = urlparse(url).hostname or ''
    except ValueError:
        return ''
    if hostname.startswith('www.'):
        hostname = hostname[4:]
    return hostname


def strip_tags(fragment: str) -> str:
    """Remove complete tags from a markup fragment and trim it."""
    return TAG_PATTERN.sub('', fragment or '').strip()


def visible_text(html: str) -> str:
    """Page text without script/style blocks and tags."""
    soup = BeautifulSoup(html, 'lxml')
    for tag in soup(['script', 'style']):
        tag.decompose()
    return soup.get_text(' ')


def _extract_links(html: str, target_domain: str, source_url: str) -> List[CitationDraft]:
    """Anchor elements whose href contains the target domain."""
    citations = []
    domain = target_domain.lower()

    for match in LINK_PATTERN.finditer(html):
        try:
            href, anchor_markup = match.group(1), match.group(2)
            if domain not in href.lower():
                continue

            full_match = match.group(0)
            start = max(0, match.start() - LINK_CONTEXT_CHARS)
            end = min(len(html), match.end() + LINK_CONTEXT_CHARS)
            context_before = strip_tags(html[start:match.start()])
            context_after = strip_tags(html[match.end():end])
            opening_tag = full_match[:full_match.find('>') + 1]

            citations.append(CitationDraft(
                citation_type=CitationType.LINK,
                citation_text=full_match,
                source_url=source_url,
                context_before=context_before[-LINK_CONTEXT_CHARS:],
                context_after=context_after[:LINK_CONTEXT_CHARS],
                anchor_text=WHITESPACE_PATTERN.sub(' ', strip_tags(anchor_markup)),
                target_url=href,
                is_dofollow=not NOFOLLOW_PATTERN.search(opening_tag)
            ))
        except Exception as e:
            print(f"Warning: Skipping malformed link in {source_url}: {e}", file=sys.stderr)
            continue

    return citations


def _extract_mentions(html: str, target_domain: str, source_url: str,
                      links: List[CitationDraft]) -> List[CitationDraft]:
    """Whole-word plain-text occurrences of the domain not already covered by a link."""
    try:
        text = visible_text(html)
    except Exception as e:
        print(f"Warning: Could not read text of {source_url}: {e}", file=sys.stderr)
        return []

    mention_pattern = re.compile(rf'\b{re.escape(target_domain)}\b', re.IGNORECASE)
    citations = []

    for match in mention_pattern.finditer(text):
        try:
            matched = match.group(0)
            if any(matched in link.context_before or matched in link.context_after for link in links):
                continue

            start = max(0, match.start() - MENTION_CONTEXT_CHARS)
            end = min(len(text), match.end() + MENTION_CONTEXT_CHARS)

            citations.append(CitationDraft(
                citation_type=CitationType.MENTION,
                citation_text=matched,
                source_url=source_url,
                context_before=text[start:match.start()].strip(),
                context_after=text[match.end():end].strip()
            ))
        except Exception as e:
            print(f"Warning: Skipping malformed mention in {source_url}: {e}", file=sys.stderr)
            continue

    return citations


def extract_citations(html: str, target_domain: str, source_url: str) -> List[CitationDraft]:
    """
    Extract links to and mentions of a domain from page markup.

    Args:
        html: Page markup
        target_domain: Domain being analyzed (e.g., 'example.com')
        source_url: URL of the page the markup came from

    Returns:
        Links in document order followed by mentions in text order
    """
    if not html or not target_domain:
        return []

    links = _extract_links(html, target_domain, source_url)
    mentions = _extract_mentions(html, target_domain, source_url, links)
    return links + mentions


def matches_filters(citation: CitationDraft, query_include: str = None, query_exclude: str = None) -> bool:
    """
    Apply request keyword filters to a citation's full context.

    Args:
        query_include: Keyword that must appear (case-insensitive)
        query_exclude: Comma-separated keywords; any occurrence rejects the citation

    Returns:
        True if the citation should be kept
    """
    text = citation.context.lower()

    if query_include and query_include.lower() not in text:
        return False

    if query_exclude:
        excluded = [q.strip().lower() for q in query_exclude.split(',') if q.strip()]
        if any(q in text for q in excluded):
            return False

    return True
