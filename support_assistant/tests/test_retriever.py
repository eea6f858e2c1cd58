"""
Tests for Retriever

Tests query processing, the three-tier search cascade, and synthesis.
"""

import pytest
from unittest.mock import Mock


def _ticket(ticket_id, **fields):
    from support_assistant.common.schemas import Ticket
    defaults = {
        "subject": f"Subject {ticket_id}",
        "description": f"Description of ticket {ticket_id}",
        "product": "iPhone",
        "status": "Open",
        "priority": "High",
    }
    defaults.update(fields)
    return Ticket(ticket_id=str(ticket_id), **defaults)


class TestQueryProcessor:
    """Tests for QueryProcessor"""

    @pytest.fixture
    def processor(self):
        from support_assistant.retriever.query_processor import QueryProcessor
        return QueryProcessor()

    def test_keywords_lowercased_and_short_tokens_dropped(self, processor):
        result = processor.parse("How do I fix my Battery issue")

        assert result.keywords == ["how", "fix", "battery"]

    def test_keyword_count_capped(self, processor):
        result = processor.parse("camera lens focus blurry photos")

        assert result.keywords == ["camera", "lens", "focus"]

    def test_duplicates_kept_in_order(self, processor):
        result = processor.parse("tv tv screen screen flicker")

        assert result.keywords == ["screen", "screen", "flicker"]

    def test_no_keywords(self, processor):
        result = processor.parse("is it ok")

        assert result.keywords == []
        assert not result.has_keywords

    def test_cleaned_query_collapses_whitespace(self, processor):
        result = processor.parse("  battery    drains\n fast ")

        assert result.cleaned == "battery drains fast"

    def test_blank_tenant_is_none(self, processor):
        assert processor.parse("battery", tenant="").tenant is None

    def test_build_filter(self, processor):
        parsed = processor.parse("battery drain", tenant="iPhone")
        f = processor.build_filter(parsed)

        assert {c.match.text for c in f.should} == {"battery", "drain"}
        assert f.must[0].match.value == "iPhone"


class TestSearcher:
    """Tests for the Searcher fallback cascade"""

    @pytest.fixture
    def mock_store(self):
        store = Mock()
        store.semantic_search.return_value = [_ticket(1), _ticket(2)]
        store.filter_search.return_value = [_ticket(3, subject="Battery drains fast")]
        store.fetch_objects.return_value = [_ticket(4)]
        return store

    @pytest.fixture
    def searcher(self, mock_store):
        from support_assistant.retriever.searcher import Searcher
        return Searcher(mock_store, default_limit=10)

    @pytest.mark.asyncio
    async def test_semantic_success_is_terminal(self, searcher, mock_store):
        from support_assistant.common.schemas import RetrievalTier

        result = await searcher.search("battery drains fast")

        assert result.tier == RetrievalTier.SEMANTIC
        assert result.ticket_ids == ("1", "2")
        assert not result.fallback_used
        mock_store.filter_search.assert_not_called()
        mock_store.fetch_objects.assert_not_called()

    @pytest.mark.asyncio
    async def test_semantic_empty_is_terminal(self, searcher, mock_store):
        from support_assistant.common.schemas import RetrievalTier
        mock_store.semantic_search.return_value = []

        result = await searcher.search("battery drains fast")

        assert result.tier == RetrievalTier.SEMANTIC
        assert result.tickets == ()
        mock_store.filter_search.assert_not_called()

    @pytest.mark.asyncio
    async def test_tenant_passed_to_semantic_search(self, searcher, mock_store):
        await searcher.search("battery", tenant="GoPro Hero", limit=5)

        mock_store.semantic_search.assert_called_once_with("battery", "GoPro Hero", 5)

    @pytest.mark.asyncio
    async def test_results_truncated_to_limit(self, searcher, mock_store):
        mock_store.semantic_search.return_value = [_ticket(i) for i in range(8)]

        result = await searcher.search("battery", limit=3)

        assert len(result.tickets) == 3

    @pytest.mark.asyncio
    async def test_transport_error_short_circuits(self, searcher, mock_store):
        from support_assistant.common.errors import TransportUnavailable
        from support_assistant.common.schemas import RetrievalTier
        mock_store.semantic_search.side_effect = TransportUnavailable("connection refused")

        result = await searcher.search("battery drains fast")

        assert result.tier == RetrievalTier.EMPTY
        assert result.tickets == ()
        assert "unreachable" in result.fallback_reason
        mock_store.filter_search.assert_not_called()
        mock_store.fetch_objects.assert_not_called()

    @pytest.mark.asyncio
    async def test_embedding_unavailable_falls_to_structured(self, searcher, mock_store):
        from support_assistant.common.errors import EmbeddingUnavailable
        from support_assistant.common.schemas import RetrievalTier
        mock_store.semantic_search.side_effect = EmbeddingUnavailable("vectorizer down")

        result = await searcher.search("battery drains fast")

        assert result.tier == RetrievalTier.KEYWORD_STRUCTURED
        assert result.ticket_ids == ("3",)
        assert result.fallback_used
        assert "embedding" in result.fallback_reason
        mock_store.fetch_objects.assert_not_called()

    @pytest.mark.asyncio
    async def test_service_error_falls_to_structured(self, searcher, mock_store):
        from support_assistant.common.errors import ServiceError
        from support_assistant.common.schemas import RetrievalTier
        mock_store.semantic_search.side_effect = ServiceError("500")

        result = await searcher.search("battery drains fast")

        assert result.tier == RetrievalTier.KEYWORD_STRUCTURED

    @pytest.mark.asyncio
    async def test_structured_empty_falls_to_raw(self, searcher, mock_store):
        from support_assistant.common.errors import EmbeddingUnavailable
        from support_assistant.common.schemas import RetrievalTier
        mock_store.semantic_search.side_effect = EmbeddingUnavailable("down")
        mock_store.filter_search.return_value = []

        result = await searcher.search("battery drains fast")

        assert result.tier == RetrievalTier.KEYWORD_RAW
        assert result.ticket_ids == ("4",)
        assert result.fallback_used

    @pytest.mark.asyncio
    async def test_structured_error_falls_to_raw(self, searcher, mock_store):
        from support_assistant.common.errors import EmbeddingUnavailable, ServiceError
        from support_assistant.common.schemas import RetrievalTier
        mock_store.semantic_search.side_effect = EmbeddingUnavailable("down")
        mock_store.filter_search.side_effect = ServiceError("index missing")

        result = await searcher.search("battery drains fast")

        assert result.tier == RetrievalTier.KEYWORD_RAW

    @pytest.mark.asyncio
    async def test_structured_transport_error_is_empty(self, searcher, mock_store):
        from support_assistant.common.errors import EmbeddingUnavailable, TransportUnavailable
        from support_assistant.common.schemas import RetrievalTier
        mock_store.semantic_search.side_effect = EmbeddingUnavailable("down")
        mock_store.filter_search.side_effect = TransportUnavailable("gone")

        result = await searcher.search("battery drains fast")

        assert result.tier == RetrievalTier.EMPTY
        mock_store.fetch_objects.assert_not_called()

    @pytest.mark.asyncio
    async def test_all_tiers_fail_is_empty(self, searcher, mock_store):
        from support_assistant.common.errors import EmbeddingUnavailable, ServiceError
        from support_assistant.common.schemas import RetrievalTier
        mock_store.semantic_search.side_effect = EmbeddingUnavailable("down")
        mock_store.filter_search.side_effect = ServiceError("bad filter")
        mock_store.fetch_objects.side_effect = ServiceError("bad filter")

        result = await searcher.search("battery drains fast")

        assert result.tier == RetrievalTier.EMPTY
        assert result.fallback_used
        assert "all fallback tiers failed" in result.fallback_reason

    @pytest.mark.asyncio
    async def test_each_tier_called_at_most_once(self, searcher, mock_store):
        from support_assistant.common.errors import EmbeddingUnavailable
        mock_store.semantic_search.side_effect = EmbeddingUnavailable("down")
        mock_store.filter_search.return_value = []
        mock_store.fetch_objects.return_value = []

        await searcher.search("battery drains fast")

        assert mock_store.semantic_search.call_count == 1
        assert mock_store.filter_search.call_count == 1
        assert mock_store.fetch_objects.call_count == 1

    @pytest.mark.asyncio
    async def test_no_keywords_returns_empty(self, searcher, mock_store):
        from support_assistant.common.errors import EmbeddingUnavailable
        from support_assistant.common.schemas import RetrievalTier
        mock_store.semantic_search.side_effect = EmbeddingUnavailable("down")

        result = await searcher.search("is it ok")

        assert result.tier == RetrievalTier.EMPTY
        assert "no usable keywords" in result.fallback_reason
        mock_store.filter_search.assert_not_called()

    @pytest.mark.asyncio
    async def test_fallback_filter_carries_tenant(self, searcher, mock_store):
        from support_assistant.common.errors import EmbeddingUnavailable
        mock_store.semantic_search.side_effect = EmbeddingUnavailable("down")

        await searcher.search("battery drains fast", tenant="iPhone")

        query_filter = mock_store.filter_search.call_args.args[0]
        assert query_filter.must[0].match.value == "iPhone"
        assert {c.match.text for c in query_filter.should} == {"battery", "drains", "fast"}

    @pytest.mark.asyncio
    async def test_raw_fetch_scans_tenant_with_substring_check(self, searcher, mock_store):
        from support_assistant.common.errors import EmbeddingUnavailable
        mock_store.semantic_search.side_effect = EmbeddingUnavailable("down")
        mock_store.filter_search.return_value = []

        await searcher.search("phone overheat", tenant="iPhone")

        scan_filter, limit, predicate = mock_store.fetch_objects.call_args.args
        assert scan_filter.must[0].match.value == "iPhone"
        assert scan_filter.should is None
        assert limit == 10
        assert predicate(_ticket(1, subject="Overheating while charging", product="iPhone"))
        assert not predicate(_ticket(2, subject="Cracked screen", description="Dropped it", product="GoPro"))

    @pytest.mark.asyncio
    async def test_structured_hits_without_substring_match_dropped(self, searcher, mock_store):
        from support_assistant.common.errors import EmbeddingUnavailable
        from support_assistant.common.schemas import RetrievalTier
        mock_store.semantic_search.side_effect = EmbeddingUnavailable("down")
        mock_store.filter_search.return_value = [_ticket(3)]

        result = await searcher.search("battery drains fast")

        assert result.tier == RetrievalTier.KEYWORD_RAW
        assert result.ticket_ids == ("4",)

    @pytest.mark.asyncio
    async def test_zero_limit_returns_nothing(self, searcher, mock_store):
        from support_assistant.common.schemas import RetrievalTier

        result = await searcher.search("battery drains fast", limit=0)

        assert result.tickets == ()
        assert result.tier == RetrievalTier.EMPTY
        mock_store.semantic_search.assert_not_called()

    @pytest.mark.asyncio
    async def test_explicit_limit_not_replaced_by_default(self, mock_store):
        from support_assistant.retriever.searcher import Searcher
        mock_store.semantic_search.return_value = [_ticket(i) for i in range(8)]

        result = await Searcher(mock_store, default_limit=5).search("battery", limit=7)

        assert len(result.tickets) == 7
        mock_store.semantic_search.assert_called_once_with("battery", None, 7)


class TestKeywordFallbackOverStore:
    """Keyword tiers running through a real TicketStore over a mocked Qdrant client"""

    @pytest.fixture
    def mock_client(self):
        def point(point_id, **payload):
            p = Mock()
            p.id = point_id
            p.payload = payload
            return p

        client = Mock()
        # Word-token index finds neither "phone" nor "overheat"
        client.query_points.return_value = Mock(points=[])
        client.scroll.side_effect = [
            ([point(1, ticketId="T0", ticketSubject="Battery drains", productPurchased="iPhone")], 1),
            ([point(2, ticketId="T1", ticketSubject="Overheating while charging",
                    productPurchased="iPhone")], None),
        ]
        return client

    @pytest.mark.asyncio
    async def test_substring_keywords_find_ticket(self, mock_client):
        from support_assistant.common.schemas import RetrievalTier
        from support_assistant.common.ticket_store import TicketStore
        from support_assistant.retriever.searcher import Searcher

        searcher = Searcher(TicketStore(mock_client, "SupportTicket", None))
        result = await searcher.search("phone overheat")

        assert result.tier == RetrievalTier.KEYWORD_RAW
        assert result.ticket_ids == ("T0", "T1")
        assert "embedding unavailable" in result.fallback_reason
        assert mock_client.scroll.call_args_list[0].kwargs["scroll_filter"] is None

    @pytest.mark.asyncio
    async def test_tenant_scan_stops_at_limit(self, mock_client):
        from support_assistant.common.ticket_store import TicketStore
        from support_assistant.retriever.searcher import Searcher

        searcher = Searcher(TicketStore(mock_client, "SupportTicket", None))
        result = await searcher.search("overheating phone", tenant="iPhone", limit=1)

        assert result.ticket_ids == ("T0",)
        assert mock_client.scroll.call_count == 1
        assert mock_client.scroll.call_args.kwargs["scroll_filter"].must[0].match.value == "iPhone"


class TestSynthesizer:
    """Tests for Synthesizer"""

    @pytest.fixture
    def synthesizer_no_llm(self):
        from support_assistant.retriever.synthesizer import Synthesizer
        return Synthesizer(llm_client=None)

    @pytest.fixture
    def mock_llm(self):
        llm = Mock()
        llm.is_available = True
        llm.generate.return_value = "Replace the battery, see Ticket #1."
        return llm

    @pytest.fixture
    def sample_tickets(self):
        return [
            _ticket(1, subject="Battery drains fast", resolution="Replaced battery"),
            _ticket(2, subject="Battery swelling", description="x" * 400),
        ]

    def test_has_llm_property(self, synthesizer_no_llm, mock_llm):
        from support_assistant.retriever.synthesizer import Synthesizer

        assert not synthesizer_no_llm.has_llm
        assert Synthesizer(llm_client=mock_llm).has_llm

    @pytest.mark.asyncio
    async def test_synthesize_no_results(self, synthesizer_no_llm):
        from support_assistant.retriever.synthesizer import NO_RESULTS_MESSAGE

        answer = await synthesizer_no_llm.synthesize("battery", [])

        assert answer.text == NO_RESULTS_MESSAGE
        assert answer.ticket_ids == ()

    @pytest.mark.asyncio
    async def test_synthesize_with_llm(self, mock_llm, sample_tickets):
        from support_assistant.retriever.synthesizer import Synthesizer

        answer = await Synthesizer(llm_client=mock_llm).synthesize("battery drain", sample_tickets)

        assert answer.text == "Replace the battery, see Ticket #1."
        assert answer.ticket_ids == ("1", "2")
        assert not answer.used_fallback
        prompt = mock_llm.generate.call_args.args[0]
        assert "Ticket ID: 1" in prompt
        assert "Ticket ID: 2" in prompt
        assert '"battery drain"' in prompt

    @pytest.mark.asyncio
    async def test_llm_failure_uses_template(self, mock_llm, sample_tickets):
        from support_assistant.common.errors import GenerationFailure
        from support_assistant.retriever.synthesizer import Synthesizer
        mock_llm.generate.side_effect = GenerationFailure("google generation failed: timeout")

        answer = await Synthesizer(llm_client=mock_llm).synthesize("battery drain", sample_tickets)

        assert answer.used_fallback
        assert "**Ticket #1**" in answer.text
        assert answer.ticket_ids == ("1", "2")

    @pytest.mark.asyncio
    async def test_quota_failure_logs_distinct_warning(self, mock_llm, sample_tickets, caplog):
        import logging
        from support_assistant.common.errors import GenerationFailure
        from support_assistant.retriever.synthesizer import Synthesizer
        mock_llm.generate.side_effect = GenerationFailure("429 Too Many Requests")

        with caplog.at_level(logging.WARNING, logger="support_assistant.retriever.synthesizer"):
            answer = await Synthesizer(llm_client=mock_llm).synthesize("battery", sample_tickets)

        assert "quota or rate limit" in caplog.text
        assert answer.used_fallback

    @pytest.mark.asyncio
    async def test_fallback_caps_ticket_blocks(self, synthesizer_no_llm):
        tickets = [_ticket(i) for i in range(1, 6)]

        answer = await synthesizer_no_llm.synthesize("screen flicker", tickets)

        assert answer.text.count("**Ticket #") == 3
        assert "...and 2 more" in answer.text
        assert answer.ticket_ids == ("1", "2", "3", "4", "5")

    def test_fallback_truncates_long_fields(self, synthesizer_no_llm, sample_tickets):
        text = synthesizer_no_llm.render_fallback("battery", sample_tickets)

        assert "x" * 150 + "..." in text
        assert "x" * 151 not in text

    def test_fallback_mentions_fallback_mode(self, synthesizer_no_llm, sample_tickets):
        text = synthesizer_no_llm.render_fallback("anything", sample_tickets)

        assert "fallback mode" in text
        assert "No resolution provided" in text

    @pytest.mark.parametrize("query,tip", [
        ("My battery will not charge", "battery"),
        ("Camera photos are blurry", "camera"),
        ("How do I install the app", "setup"),
        ("Screen is cracked", None),
    ])
    def test_select_tip(self, query, tip):
        from support_assistant.retriever.synthesizer import Synthesizer

        assert Synthesizer.select_tip(query) == tip

    def test_at_most_one_tip(self, synthesizer_no_llm, sample_tickets):
        text = synthesizer_no_llm.render_fallback("battery and camera setup", sample_tickets)

        assert text.count(" tips:**") == 1
