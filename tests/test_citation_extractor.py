"""
Tests for citation extraction from page markup.
"""

from db import CitationType
from extractors import CitationDraft, extract_citations, extract_domain, matches_filters


class TestExtractDomain:

    def test_strips_www(self):
        assert extract_domain("https://www.Example.com/path?q=1") == "example.com"

    def test_unparseable_url(self):
        assert extract_domain("not a url") == ""


class TestLinkPass:

    def test_finds_link_with_context_and_anchor(self):
        html = '<html><body><p>Read the <a href="https://example.com/docs">official <b>docs</b></a> first.</p></body></html>'
        citations = extract_citations(html, "example.com", "https://blog.test/post")

        assert len(citations) == 1
        link = citations[0]
        assert link.citation_type == CitationType.LINK
        assert link.anchor_text == "official docs"
        assert link.target_url == "https://example.com/docs"
        assert link.context_before == "Read the"
        assert link.context_after == "first."
        assert link.is_dofollow is True
        assert link.source_url == "https://blog.test/post"

    def test_nofollow_link(self):
        html = '<html><body><a rel="nofollow noopener" href="https://example.com">x</a></body></html>'
        [link] = extract_citations(html, "example.com", "https://blog.test/")
        assert link.is_dofollow is False

    def test_ignores_links_to_other_domains(self):
        html = '<html><body><a href="https://other.org/">other</a></body></html>'
        assert extract_citations(html, "example.com", "https://blog.test/") == []

    def test_context_window_is_bounded(self):
        filler = "word " * 100
        html = f'<html><body><p>{filler}<a href="https://example.com">x</a>{filler}</p></body></html>'
        [link] = extract_citations(html, "example.com", "https://blog.test/")
        assert len(link.context_before) <= 200
        assert len(link.context_after) <= 200


class TestMentionPass:

    def test_finds_whole_word_mention(self):
        html = '<html><body><p>We compared example.com with others.</p></body></html>'
        [mention] = extract_citations(html, "example.com", "https://blog.test/")

        assert mention.citation_type == CitationType.MENTION
        assert mention.citation_text == "example.com"
        assert mention.context_before == "We compared"
        assert mention.context_after == "with others."
        assert mention.anchor_text is None
        assert mention.is_dofollow is None

    def test_ignores_script_and_style(self):
        html = ('<html><head><style>.example.com{}</style></head><body>'
                '<script>var u = "example.com";</script><p>nothing here</p></body></html>')
        assert extract_citations(html, "example.com", "https://blog.test/") == []

    def test_partial_word_is_not_a_mention(self):
        html = '<html><body><p>Visit myexample.community today.</p></body></html>'
        assert extract_citations(html, "example.com", "https://blog.test/") == []

    def test_mention_inside_link_context_is_dropped(self):
        html = ('<html><body><p>See example.com here: '
                '<a href="https://example.com">link</a></p></body></html>')
        citations = extract_citations(html, "example.com", "https://blog.test/")
        assert [c.citation_type for c in citations] == [CitationType.LINK]

    def test_links_come_before_mentions(self):
        html = ('<html><body><p><a href="https://example.com">site</a></p>'
                + '<p>' + 'padding ' * 60 + '</p>'
                + '<p>Later we discuss example.com again.</p></body></html>')
        citations = extract_citations(html, "example.com", "https://blog.test/")
        assert [c.citation_type for c in citations] == [CitationType.LINK, CitationType.MENTION]


class TestMalformedInput:

    def test_empty_inputs(self):
        assert extract_citations("", "example.com", "https://blog.test/") == []
        assert extract_citations("<html></html>", "", "https://blog.test/") == []

    def test_broken_markup_does_not_raise(self):
        html = '<html><body><a href="https://example.com">unclosed <p>example.com <div></html>'
        citations = extract_citations(html, "example.com", "https://blog.test/")
        assert isinstance(citations, list)


class TestMatchesFilters:

    def _draft(self, text):
        return CitationDraft(
            citation_type=CitationType.MENTION,
            citation_text="example.com",
            source_url="https://blog.test/",
            context_before=text,
            context_after=""
        )

    def test_no_filters_keeps_everything(self):
        assert matches_filters(self._draft("anything")) is True

    def test_include_is_case_insensitive(self):
        assert matches_filters(self._draft("A Great Review"), query_include="review") is True
        assert matches_filters(self._draft("A Great Post"), query_include="review") is False

    def test_exclude_list(self):
        draft = self._draft("sponsored content")
        assert matches_filters(draft, query_exclude="spam, Sponsored") is False
        assert matches_filters(draft, query_exclude="spam,ads") is True
