"""Tests for request validation."""

from __future__ import annotations

import pytest

from recollect.models import Category
from recollect.validators import (
    ForgetRequest,
    InvalidRequest,
    SearchRequest,
    StoreRequest,
    parse_request,
)


class TestStoreRequest:
    def test_defaults_to_other(self) -> None:
        request = parse_request(StoreRequest, {"text": " buy milk "})

        assert request.text == "buy milk"
        assert request.category is Category.OTHER

    def test_accepts_category_string(self) -> None:
        request = parse_request(StoreRequest, {"text": "x", "category": "decision"})

        assert request.category is Category.DECISION

    def test_rejects_blank_text(self) -> None:
        with pytest.raises(InvalidRequest) as exc_info:
            parse_request(StoreRequest, {"text": "   "})

        assert exc_info.value.field == "text"

    def test_rejects_unknown_category(self) -> None:
        with pytest.raises(InvalidRequest) as exc_info:
            parse_request(StoreRequest, {"text": "x", "category": "knowledge"})

        assert exc_info.value.field == "category"


class TestSearchRequest:
    def test_default_limit_from_context(self) -> None:
        request = parse_request(
            SearchRequest, {"query": "milk", "limit": None}, default_limit=7, max_limit=9
        )

        assert request.limit == 7

    def test_default_limit_when_omitted(self) -> None:
        request = parse_request(SearchRequest, {"query": "milk"}, default_limit=4, max_limit=9)

        assert request.limit == 4

    @pytest.mark.parametrize("limit", [0, -1, 21])
    def test_out_of_range(self, limit: int) -> None:
        with pytest.raises(InvalidRequest) as exc_info:
            parse_request(
                SearchRequest, {"query": "milk", "limit": limit}, default_limit=5, max_limit=20
            )

        assert exc_info.value.field == "limit"

    @pytest.mark.parametrize("limit", ["5", 2.0, True])
    def test_non_integer_limit(self, limit) -> None:
        with pytest.raises(InvalidRequest):
            parse_request(SearchRequest, {"query": "milk", "limit": limit})

    def test_rejects_blank_query(self) -> None:
        with pytest.raises(InvalidRequest) as exc_info:
            parse_request(SearchRequest, {"query": "\t"})

        assert exc_info.value.field == "query"


class TestForgetRequest:
    def test_strips_id(self) -> None:
        assert parse_request(ForgetRequest, {"id": " abc "}).id == "abc"

    def test_rejects_blank_id(self) -> None:
        with pytest.raises(InvalidRequest) as exc_info:
            parse_request(ForgetRequest, {"id": ""})

        assert exc_info.value.field == "id"
        assert isinstance(exc_info.value, ValueError)
