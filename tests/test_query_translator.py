"""
Tests for translating raw list parameters into a QueryDescriptor.
"""

import math
from datetime import UTC, datetime, timedelta, timezone

import pytest

from post_service.entities import ApiQueryParams
from post_service.query_descriptor import (
    ContainsInsensitive,
    DateGte,
    DefaultSort,
    EndsWith,
    Equals,
    In,
    InvalidDate,
    SortOrder,
)
from post_service.query_translator import (
    build_filters,
    infer_filter,
    parse_date,
    to_page,
    to_positive_int,
    translate_query,
)


class TestToPositiveInt:
    """Test cases for to_positive_int()"""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (5, 5),
            ("2", 2),
            (" 3 ", 3),
            ("2.7", 2),
            (2.9, 2),
            ("1e2", 100),
            (True, 1),
        ],
    )
    def test_positive_values(self, value, expected):
        assert to_positive_int(value, 10) == expected

    @pytest.mark.parametrize(
        "value",
        [None, 0, "0", -5, "-1", "", "abc", math.nan, "nan", math.inf, [], {}, 0.5],
    )
    def test_falls_back_to_default(self, value):
        assert to_positive_int(value, 7) == 7


class TestToPage:
    """Test cases for to_page()"""

    @pytest.mark.parametrize(
        "value,expected",
        [(3, 3), ("3", 3), (-2, -2), ("-2", -2), (-2.9, -2), (1.5, 1), (True, 1)],
    )
    def test_non_zero_numbers_are_kept(self, value, expected):
        assert to_page(value) == expected

    @pytest.mark.parametrize(
        "value", [None, 0, "0", 0.5, "", "  ", "abc", math.nan, math.inf, []]
    )
    def test_falls_back_to_default(self, value):
        assert to_page(value) == 1
        assert to_page(value, 4) == 4


class TestParseDate:
    """Test cases for parse_date()"""

    def test_date_only_is_midnight_utc(self):
        assert parse_date("2023-01-01") == datetime(2023, 1, 1, tzinfo=UTC)

    def test_offset_is_kept(self):
        parsed = parse_date("2023-01-01T10:30:00+02:00")

        assert parsed == datetime(2023, 1, 1, 10, 30, tzinfo=timezone(timedelta(hours=2)))

    def test_invalid_value(self):
        assert parse_date("not-a-date") == InvalidDate(raw="not-a-date")


class TestFilterInference:
    """Test cases for infer_filter() and build_filters()"""

    def test_domain_suffix(self):
        assert infer_filter("emailDomain", "example.com") == (
            "email",
            EndsWith(suffix="@example.com"),
        )

    def test_domain_only_strips_first_occurrence(self):
        field, _ = infer_filter("backupDomainDomain", "example.com")

        assert field == "backupDomain"

    def test_date_substring(self):
        assert infer_filter("createdDate", "2023-01-01") == (
            "createdDate",
            DateGte(date=datetime(2023, 1, 1, tzinfo=UTC)),
        )

    def test_unparseable_date_is_kept_as_invalid(self):
        assert infer_filter("publishDateFrom", "yesterday") == (
            "publishDateFrom",
            DateGte(date=InvalidDate(raw="yesterday")),
        )

    def test_list_value(self):
        assert infer_filter("tags", ["a", "b"]) == ("tags", In(values=["a", "b"]))

    def test_tuple_value(self):
        assert infer_filter("tags", ("a",)) == ("tags", In(values=["a"]))

    def test_name_substring(self):
        assert infer_filter("authorName", "john") == (
            "authorName",
            ContainsInsensitive(text="john"),
        )

    @pytest.mark.parametrize("value", [True, 42, "active"])
    def test_fallback_equals(self, value):
        assert infer_filter("status", value) == ("status", Equals(value=value))

    def test_domain_wins_over_date(self):
        assert infer_filter("updateDateDomain", "corp.io") == (
            "updateDate",
            EndsWith(suffix="@corp.io"),
        )

    def test_date_wins_over_name(self):
        _, predicate = infer_filter("birthDateName", "x")

        assert predicate == DateGte(date=InvalidDate(raw="x"))

    def test_list_wins_over_name_and_date(self):
        assert infer_filter("createdDateNames", ["2023"]) == (
            "createdDateNames",
            In(values=["2023"]),
        )

    def test_non_string_domain_falls_through(self):
        assert infer_filter("emailDomain", 5) == ("emailDomain", Equals(value=5))

    def test_name_with_non_string_is_equals(self):
        assert infer_filter("userName", 12) == ("userName", Equals(value=12))

    def test_reserved_and_null_keys_are_skipped(self):
        filters = build_filters(
            {
                "page": 2,
                "limit": 5,
                "search": "x",
                "sortBy": "title",
                "sortOrder": "asc",
                "category": None,
                "isPublished": False,
            }
        )

        assert filters == {"isPublished": Equals(value=False)}


class TestTranslateQuery:
    """Test cases for translate_query()"""

    def test_empty_params(self):
        descriptor = translate_query({})

        assert descriptor.page == 1
        assert descriptor.limit == 10
        assert descriptor.search is None
        assert descriptor.search_fields is None
        assert descriptor.sort_by == "createdAt"
        assert descriptor.sort_order == "desc"
        assert descriptor.relations == ()
        assert descriptor.custom_filters == {}

    def test_none_params(self):
        assert translate_query(None) == translate_query({})

    def test_page_and_limit_from_strings(self):
        descriptor = translate_query({"page": "3", "limit": "25"})

        assert (descriptor.page, descriptor.limit) == (3, 25)

    @pytest.mark.parametrize("limit", [101, 150, "500", 10_000])
    def test_limit_is_capped(self, limit):
        assert translate_query({"limit": limit}).limit == 100

    @pytest.mark.parametrize("value", [0, "0", "", "abc", math.nan, None])
    def test_falsy_page_uses_default(self, value):
        assert translate_query({"page": value}).page == 1

    @pytest.mark.parametrize("value,expected", [(-2, -2), ("-2", -2), (-1, -1), (4, 4), ("2.7", 2)])
    def test_non_zero_page_is_kept(self, value, expected):
        assert translate_query({"page": value}).page == expected

    @pytest.mark.parametrize("value", [0, -1, -5, "abc", math.nan])
    def test_invalid_limit_uses_default(self, value):
        assert translate_query({"limit": value}).limit == 10

    def test_search_is_passed_through(self):
        descriptor = translate_query({"search": "python"}, search_fields=["title", "content"])

        assert descriptor.search == "python"
        assert descriptor.search_fields == ("title", "content")

    def test_non_string_search_is_coerced(self):
        assert translate_query({"search": 42}).search == "42"

    def test_empty_search_fields_become_none(self):
        assert translate_query({"search": "x"}, search_fields=()).search_fields is None

    def test_default_sort(self):
        descriptor = translate_query(
            {}, default_sort=DefaultSort(field="title", order=SortOrder.ASC)
        )

        assert (descriptor.sort_by, descriptor.sort_order) == ("title", "asc")

    def test_explicit_sort_wins(self):
        descriptor = translate_query(
            {"sortBy": "updatedAt", "sortOrder": "ASC"},
            default_sort=DefaultSort(field="title", order=SortOrder.DESC),
        )

        assert (descriptor.sort_by, descriptor.sort_order) == ("updatedAt", "ASC")

    def test_empty_sort_values_use_default(self):
        descriptor = translate_query({"sortBy": "", "sortOrder": None})

        assert (descriptor.sort_by, descriptor.sort_order) == ("createdAt", "desc")

    def test_relations_are_forwarded(self):
        descriptor = translate_query({}, relations=["author", "author.profile"])

        assert descriptor.relations == ("author", "author.profile")

    def test_inferred_filters(self):
        descriptor = translate_query(
            {
                "page": 1,
                "emailDomain": "example.com",
                "createdDate": "2023-01-01",
                "tags": ["a", "b"],
                "authorName": "john",
                "isPublished": True,
            }
        )

        assert descriptor.custom_filters == {
            "email": EndsWith(suffix="@example.com"),
            "createdDate": DateGte(date=datetime(2023, 1, 1, tzinfo=UTC)),
            "tags": In(values=["a", "b"]),
            "authorName": ContainsInsensitive(text="john"),
            "isPublished": Equals(value=True),
        }

    def test_extra_filters_override_inferred(self):
        descriptor = translate_query(
            {"status": "draft", "authorName": "john"},
            extra_custom_filters={"status": "published", "isDeleted": False},
        )

        assert descriptor.custom_filters == {
            "status": Equals(value="published"),
            "authorName": ContainsInsensitive(text="john"),
            "isDeleted": Equals(value=False),
        }

    def test_extra_filter_predicates_are_kept(self):
        descriptor = translate_query({}, extra_custom_filters={"tags": In(values=["x"])})

        assert descriptor.custom_filters == {"tags": In(values=["x"])}

    def test_null_extra_filters_are_skipped(self):
        descriptor = translate_query({"status": "draft"}, extra_custom_filters={"status": None})

        assert descriptor.custom_filters == {"status": Equals(value="draft")}

    def test_pydantic_params(self):
        params = ApiQueryParams(page=2, sortBy="title", emailDomain="example.com")

        descriptor = translate_query(params)

        assert descriptor.page == 2
        assert descriptor.sort_by == "title"
        assert descriptor.custom_filters == {"email": EndsWith(suffix="@example.com")}

    def test_is_deterministic_and_does_not_mutate_input(self):
        params = {"page": "2", "tags": ["a"], "authorName": "jo"}
        snapshot = {"page": "2", "tags": ["a"], "authorName": "jo"}

        assert translate_query(params) == translate_query(params)
        assert params == snapshot
