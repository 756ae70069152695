"""Tests for JSON:API request parsing."""

import pytest

from endpoints.controller import configure
from endpoints.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnsupportedMediaTypeError,
)
from endpoints.request import ResourceRequest, parse_document, parse_include, parse_read_query
from tests.helpers import make_request


class TestMediaType:
    def test_missing_content_type(self, books):
        request = ResourceRequest(method="POST", body=b'{"data": {"type": "books"}}')
        with pytest.raises(UnsupportedMediaTypeError):
            parse_document(request, books, "create")

    def test_media_type_parameters_rejected(self, books):
        request = make_request(
            "POST",
            {"type": "books"},
            content_type="application/vnd.api+json; charset=utf-8",
        )
        with pytest.raises(UnsupportedMediaTypeError):
            parse_document(request, books, "create")

    def test_plain_json_rejected(self, books):
        request = make_request("POST", {"type": "books"}, content_type="application/json")
        with pytest.raises(UnsupportedMediaTypeError):
            parse_document(request, books, "create")


class TestParseDocument:
    def test_attributes_and_relationships(self, books, authors, tags):
        request = make_request(
            "POST",
            {
                "type": "books",
                "attributes": {"title": "The Dispossessed"},
                "relationships": {
                    "author": {"data": {"type": "authors", "id": 1}},
                    "tags": {"data": [{"type": "tags", "id": "scifi"}]},
                },
            },
        )
        document = parse_document(request, books, "create")

        assert document.type == "books"
        assert document.id is None
        assert document.attributes == {"title": "The Dispossessed", "author_id": "1"}
        assert [(rel.name, rel.ids) for rel in document.to_many] == [("tags", ["scifi"])]

    def test_to_one_can_be_cleared(self, books):
        request = make_request(
            "PATCH",
            {"type": "books", "id": "1", "relationships": {"author": {"data": None}}},
            id=1,
        )
        document = parse_document(request, books, "update")
        assert document.attributes == {"author_id": None}

    def test_invalid_json(self, books):
        request = ResourceRequest(
            method="POST", content_type="application/vnd.api+json", body=b"{not json"
        )
        with pytest.raises(BadRequestError, match="not valid JSON"):
            parse_document(request, books, "create")

    def test_trailing_garbage_is_invalid_json(self, books):
        request = ResourceRequest(
            method="POST", content_type="application/vnd.api+json", body=b'{"data": {}} extra'
        )
        with pytest.raises(BadRequestError, match="not valid JSON"):
            parse_document(request, books, "create")

    def test_empty_body(self, books):
        request = ResourceRequest(method="POST", content_type="application/vnd.api+json")
        with pytest.raises(BadRequestError) as exc_info:
            parse_document(request, books, "create")
        assert exc_info.value.detail == "Request document must contain a primary 'data' member"

    def test_missing_data(self, books):
        request = ResourceRequest(
            method="POST", content_type="application/vnd.api+json", body=b'{"meta": {}}'
        )
        with pytest.raises(BadRequestError):
            parse_document(request, books, "create")

    def test_data_must_be_object(self, books):
        request = make_request("POST", [{"type": "books"}])
        with pytest.raises(BadRequestError) as exc_info:
            parse_document(request, books, "create")
        assert exc_info.value.source == {"pointer": "/data"}

    def test_attributes_must_be_object(self, books):
        request = make_request("POST", {"type": "books", "attributes": "title"})
        with pytest.raises(BadRequestError) as exc_info:
            parse_document(request, books, "create")
        assert exc_info.value.source == {"pointer": "/data/attributes"}

    def test_missing_type(self, books):
        request = make_request("POST", {"attributes": {"title": "Lathe"}})
        with pytest.raises(BadRequestError, match="'type'"):
            parse_document(request, books, "create")

    def test_type_mismatch(self, books):
        request = make_request("POST", {"type": "authors"})
        with pytest.raises(ConflictError):
            parse_document(request, books, "create")

    def test_client_id_forbidden(self, books):
        request = make_request("POST", {"type": "books", "id": "42"})
        with pytest.raises(ForbiddenError):
            parse_document(request, books, "create")

    def test_client_id_accepted(self, tags):
        request = make_request("POST", {"type": "tags", "id": "fantasy"})
        assert parse_document(request, tags, "create").id == "fantasy"

    def test_update_requires_id(self, books):
        request = make_request("PATCH", {"type": "books"}, id=1)
        with pytest.raises(BadRequestError, match="'id'"):
            parse_document(request, books, "update")

    def test_update_id_mismatch(self, books):
        request = make_request("PATCH", {"type": "books", "id": "2"}, id=1)
        with pytest.raises(ConflictError):
            parse_document(request, books, "update")

    def test_numeric_id_matches_url(self, books):
        request = make_request("PATCH", {"type": "books", "id": 1}, id=1)
        assert parse_document(request, books, "update").id == "1"

    def test_unknown_attribute(self, books):
        request = make_request("POST", {"type": "books", "attributes": {"isbn": "x"}})
        with pytest.raises(BadRequestError) as exc_info:
            parse_document(request, books, "create")
        assert exc_info.value.source == {"pointer": "/data/attributes/isbn"}

    def test_unknown_relationship(self, books):
        request = make_request(
            "POST",
            {"type": "books", "relationships": {"publisher": {"data": None}}},
        )
        with pytest.raises(BadRequestError, match="publisher"):
            parse_document(request, books, "create")

    def test_to_many_requires_array(self, books):
        request = make_request(
            "POST",
            {"type": "books", "relationships": {"tags": {"data": {"type": "tags", "id": "a"}}}},
        )
        with pytest.raises(BadRequestError):
            parse_document(request, books, "create")

    def test_linkage_type_mismatch(self, books):
        request = make_request(
            "POST",
            {"type": "books", "relationships": {"author": {"data": {"type": "tags", "id": "1"}}}},
        )
        with pytest.raises(ConflictError):
            parse_document(request, books, "create")


class TestParseReadQuery:
    def test_by_id_with_include(self, books):
        request = make_request(id=3, query={"include": "author,tags"})
        query = parse_read_query(request, configure("read"), books)

        assert query.id == "3"
        assert query.include == ["author", "tags"]

    def test_include_defaults_to_config(self, books):
        config = configure("read", {"relations": ["tags", "author"]})
        assert parse_include(make_request(), config, books) == ["author", "tags"]

    def test_empty_include_overrides_config(self, books):
        config = configure("read", {"relations": ["author"]})
        assert parse_include(make_request(query={"include": ""}), config, books) == []

    def test_nested_include_rejected(self, books):
        with pytest.raises(BadRequestError, match="Nested"):
            parse_read_query(make_request(query={"include": "author.books"}), configure("read"), books)

    def test_unknown_include_rejected(self, books):
        with pytest.raises(BadRequestError):
            parse_read_query(make_request(query={"include": "publisher"}), configure("read"), books)

    def test_filters_and_sort(self, books):
        request = make_request(query={"filter[title]": "A,B", "sort": "-date_published,id"})
        query = parse_read_query(request, configure("read"), books)

        assert query.filters == {"title": ["A", "B"]}
        assert query.sort == ["-date_published", "id"]

    def test_unknown_filter_field(self, books):
        with pytest.raises(BadRequestError) as exc_info:
            parse_read_query(make_request(query={"filter[isbn]": "1"}), configure("read"), books)
        assert exc_info.value.source == {"parameter": "filter[isbn]"}

    def test_unknown_sort_field(self, books):
        with pytest.raises(BadRequestError):
            parse_read_query(make_request(query={"sort": "isbn"}), configure("read"), books)

    def test_related_mode(self, books):
        request = make_request(id=5, relation="author", query={"include": "books"})
        query = parse_read_query(request, configure("read", {"mode": "related"}), books)

        assert query.mode == "related"
        assert query.base_id == "5"
        assert query.base_relation == "author"
        assert query.include == ["books"]

    def test_related_mode_unknown_relation(self, books):
        request = make_request(id=5, relation="publisher")
        with pytest.raises(NotFoundError):
            parse_read_query(request, configure("read", {"mode": "related"}), books)
