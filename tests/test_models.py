"""Tests for the shared Pydantic models."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from bookbite.models import (
    Book,
    BookCategory,
    BookRatingResponse,
    ChatConversation,
    ChatMessage,
    HTTPMethod,
    RequestDescriptor,
    SearchPage,
    StreamEvent,
    StreamEventType,
    Summary,
    SummaryGenerationJob,
    SummaryStyle,
    parse_timestamp,
)


class TestParseTimestamp:
    def test_fractional_seconds(self) -> None:
        result = parse_timestamp("2024-05-01T12:30:45.123456+00:00")
        assert result == datetime(2024, 5, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)

    def test_plain_iso8601_with_z(self) -> None:
        result = parse_timestamp("2024-05-01T12:30:45Z")
        assert result == datetime(2024, 5, 1, 12, 30, 45, tzinfo=timezone.utc)

    def test_offset_preserved(self) -> None:
        result = parse_timestamp("2024-05-01T12:30:45+02:00")
        assert result.utcoffset() == timedelta(hours=2)

    def test_datetime_passes_through(self) -> None:
        now = datetime.now(timezone.utc)
        assert parse_timestamp(now) is now

    def test_invalid_string_named_in_error(self) -> None:
        with pytest.raises(ValueError, match="Invalid date format: yesterday"):
            parse_timestamp("yesterday")

    def test_model_field_uses_parser(self) -> None:
        with pytest.raises(ValidationError, match="Invalid date format: 2024/05/01"):
            ChatConversation.model_validate(
                {
                    "id": "c1",
                    "book_id": "b1",
                    "created_at": "2024/05/01",
                    "updated_at": "2024-05-01T12:30:45Z",
                }
            )


class TestBook:
    def test_missing_lists_and_flags_default(self) -> None:
        book = Book.model_validate(
            {"id": "1", "title": "Meditations", "authors": None, "is_featured": None}
        )
        assert book.authors == []
        assert book.categories == []
        assert book.source_attribution == []
        assert book.is_featured is False
        assert book.is_nyt_bestseller is False

    def test_formatted_authors(self) -> None:
        book = Book(id="1", title="Freakonomics", authors=["Steven Levitt", "Stephen Dubner"])
        assert book.formatted_authors == "Steven Levitt, Stephen Dubner"

    def test_nyt_info_with_rank_and_weeks(self) -> None:
        book = Book(
            id="1", title="Atomic Habits", is_nyt_bestseller=True, nyt_rank=3, nyt_weeks_on_list=12
        )
        assert book.nyt_bestseller_info == "NYT #3 • 12 weeks"

    def test_nyt_info_single_week_omitted(self) -> None:
        book = Book(id="1", title="X", is_nyt_bestseller=True, nyt_rank=1, nyt_weeks_on_list=1)
        assert book.nyt_bestseller_info == "NYT #1"

    def test_nyt_info_none_when_not_bestseller(self) -> None:
        assert Book(id="1", title="X", nyt_rank=1).nyt_bestseller_info is None


class TestWireAliases:
    def test_category_count_alias(self) -> None:
        category = BookCategory.model_validate({"name": "Philosophy", "count": 12})
        assert category.book_count == 12
        assert json.loads(category.model_dump_json(by_alias=True)) == {
            "name": "Philosophy",
            "count": 12,
        }

    def test_search_page_camel_case_pagination(self) -> None:
        page = SearchPage.model_validate(
            {
                "results": [{"id": "1", "title": "A"}],
                "pagination": {"page": 1, "limit": 20, "total": 41, "totalPages": 3, "hasMore": True},
            }
        )
        assert page.pagination is not None
        assert page.pagination.total_pages == 3
        assert page.has_more is True

    def test_search_page_without_pagination(self) -> None:
        assert SearchPage.model_validate({"results": []}).has_more is False

    def test_job_book_id_alias(self) -> None:
        job = SummaryGenerationJob.model_validate(
            {"id": "j1", "bookId": "b1", "status": "processing"}
        )
        assert job.book_id == "b1"

    def test_rating_distribution_digit_keys(self) -> None:
        response = BookRatingResponse.model_validate(
            {
                "book_id": "b1",
                "rating": {
                    "average": 4.2,
                    "count": 10,
                    "distribution": {"1": 0, "2": 1, "3": 1, "4": 3, "5": 5},
                    "source": "goodreads",
                },
            }
        )
        assert response.rating.distribution is not None
        assert response.rating.distribution.five == 5

    def test_chat_message_pending_defaults(self) -> None:
        message = ChatMessage.model_validate(
            {
                "id": "m1",
                "conversation_id": "c1",
                "role": "assistant",
                "content": "Hello",
                "created_at": "2024-05-01T12:30:45.5Z",
                "is_pending": None,
            }
        )
        assert message.is_pending is False

    def test_summary_minimal(self) -> None:
        summary = Summary.model_validate(
            {"id": "s1", "book_id": "b1", "one_sentence_hook": "Hook."}
        )
        assert summary.style is SummaryStyle.FULL
        assert summary.key_ideas == []


class TestRequestDescriptor:
    def test_build_encodes_model_body(self) -> None:
        descriptor = RequestDescriptor.build(
            "books/import", method=HTTPMethod.POST, json_body=Book(id="1", title="T")
        )
        assert descriptor.body is not None
        assert json.loads(descriptor.body)["title"] == "T"

    def test_build_encodes_mapping_body(self) -> None:
        descriptor = RequestDescriptor.build("x", method=HTTPMethod.POST, json_body={})
        assert descriptor.body == b"{}"

    def test_build_drops_none_params(self) -> None:
        descriptor = RequestDescriptor.build("books/search", params={"q": None, "page": 2})
        assert descriptor.params == {"page": 2}
        assert descriptor.body is None
        assert descriptor.method is HTTPMethod.GET

    def test_is_immutable(self) -> None:
        descriptor = RequestDescriptor.build("books")
        with pytest.raises(ValidationError):
            descriptor.path = "other"  # type: ignore[misc]


class TestStreamEvent:
    def test_missing_content_defaults_to_empty(self) -> None:
        event = StreamEvent.model_validate_json('{"type": "complete"}')
        assert event.type is StreamEventType.COMPLETE
        assert event.content == ""

    def test_null_content_defaults_to_empty(self) -> None:
        event = StreamEvent.model_validate_json('{"type": "chunk", "content": null}')
        assert event.content == ""

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StreamEvent.model_validate_json('{"type": "ping"}')
