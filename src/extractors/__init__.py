"""
Extractors that turn archived page markup into citation drafts.

extract_citations(html, target_domain, source_url) returns CitationDraft
objects with:
- citation_type: CitationType.LINK or CitationType.MENTION
- citation_text: matched anchor markup or mention text
- context_before / context_after: surrounding plain text
- anchor_text, target_url, is_dofollow: links only
"""

from .citations import CitationDraft, extract_citations, extract_domain, matches_filters

__all__ = ['CitationDraft', 'extract_citations', 'extract_domain', 'matches_filters']
