"""
Unit tests for JRD parsing in social.graze.webfinger.model

Tests cover full and sparse documents, ignored unknown members, link lookup
helpers and parse failures for malformed bodies.
"""

import json

import pytest
from pydantic import ValidationError

from social.graze.webfinger.errors import ParseError, WebFingerError
from social.graze.webfinger.model import Link, Response, parse_response


class TestParseResponse:
    """Test suite for parse_response function."""

    def test_full_document(self, jrd_body):
        """Test every JRD member is parsed."""
        response = parse_response(jrd_body)
        assert response.subject == "acct:nov@example.com"
        assert response.aliases == (
            "https://example.com/nov",
            "https://example.com/@nov",
        )
        assert response.properties == {
            "http://example.com/ns/role": "employee",
            "http://example.com/ns/nick": None,
        }
        assert len(response.links) == 3

        avatar = response.links[1]
        assert avatar.rel == "http://webfinger.net/rel/avatar"
        assert avatar.type == "image/png"
        assert avatar.href == "https://example.com/nov.png"
        assert avatar.titles == {"en": "Avatar", "ja": "アバター"}

        vcard = response.links[2]
        assert vcard.properties == {"http://example.com/ns/format": "vcard4"}

    def test_str_body(self, jrd_document):
        """Test text bodies are accepted as well as bytes."""
        response = parse_response(json.dumps(jrd_document))
        assert response.subject == "acct:nov@example.com"

    def test_empty_object(self):
        """Test missing members default to empty values."""
        response = parse_response("{}")
        assert response.subject is None
        assert response.aliases == ()
        assert response.properties == {}
        assert response.links == ()

    def test_unknown_members_ignored(self):
        """Test unknown members at either level are ignored."""
        response = parse_response(
            json.dumps(
                {
                    "subject": "acct:nov@example.com",
                    "x-extension": {"a": 1},
                    "links": [{"rel": "self", "x-link-extension": True}],
                }
            )
        )
        assert response.subject == "acct:nov@example.com"
        assert response.links[0].rel == "self"
        assert response.links[0].href is None

    def test_expires_and_template(self):
        response = parse_response(
            json.dumps(
                {
                    "expires": "2026-12-31T00:00:00Z",
                    "links": [
                        {
                            "rel": "lrdd",
                            "template": "https://example.com/lrdd?uri={uri}",
                        }
                    ],
                }
            )
        )
        assert response.expires == "2026-12-31T00:00:00Z"
        assert response.links[0].template == "https://example.com/lrdd?uri={uri}"

    @pytest.mark.parametrize(
        "body",
        [
            b"<html>not json</html>",
            b"",
            b"[]",
            b'"just a string"',
            b'{"aliases": "not-a-list"}',
            b'{"links": [{"href": "https://example.com"}]}',
        ],
    )
    def test_malformed_bodies(self, body):
        """Test malformed documents raise ParseError carrying the body."""
        with pytest.raises(ParseError) as exc_info:
            parse_response(body)
        assert exc_info.value.body == body
        assert isinstance(exc_info.value, WebFingerError)


class TestResponseModel:
    """Test suite for Response and Link models."""

    def test_links_for(self, jrd_body):
        response = parse_response(jrd_body)
        links = response.links_for("vcard")
        assert [link.href for link in links] == ["https://example.com/nov.vcf"]
        assert response.links_for("missing") == []

    def test_link(self, jrd_body):
        response = parse_response(jrd_body)
        issuer = response.link("http://openid.net/specs/connect/1.0/issuer")
        assert issuer is not None
        assert issuer.href == "https://openid.example.com"
        assert response.link("missing") is None

    def test_response_is_frozen(self):
        response = Response(subject="acct:nov@example.com")
        with pytest.raises(ValidationError):
            response.subject = "acct:other@example.com"

    def test_link_creation(self):
        link = Link(rel="self", href="https://example.com/nov")
        assert link.type is None
        assert link.titles == {}
        assert link.properties == {}

    def test_json_round_trip(self, jrd_body):
        """Test a dumped Response parses back to an equal Response."""
        response = parse_response(jrd_body)
        assert parse_response(response.model_dump_json()) == response

    def test_mappings_are_read_only(self, jrd_body):
        """Test properties and titles cannot be changed after parsing."""
        response = parse_response(jrd_body)
        avatar = response.link("http://webfinger.net/rel/avatar")
        vcard = response.link("vcard")

        with pytest.raises(TypeError):
            response.properties["http://example.com/ns/role"] = "admin"
        with pytest.raises(TypeError):
            avatar.titles["en"] = "Changed"
        with pytest.raises(TypeError):
            vcard.properties["injected"] = "value"

        assert response.properties["http://example.com/ns/role"] == "employee"
        assert avatar.titles == {"en": "Avatar", "ja": "アバター"}

    def test_mappings_are_copied_from_input(self):
        properties = {"http://example.com/ns/role": "employee"}
        response = Response(properties=properties)
        properties["http://example.com/ns/role"] = "admin"
        assert response.properties == {"http://example.com/ns/role": "employee"}

    def test_model_dump_gives_dicts(self, jrd_document, jrd_body):
        dumped = parse_response(jrd_body).model_dump()
        assert type(dumped["properties"]) is dict
        assert type(dumped["links"][1]["titles"]) is dict
        assert dumped["properties"] == jrd_document["properties"]
