"""
Tests for the identifier sanitizer
"""
import pytest

from pgconsole.core.errors import InvalidIdentifier
from pgconsole.core.identifiers import Identifier, is_valid_identifier, quote_identifier, sanitize


class TestSanitize:
    """Names allowed into SQL text"""

    @pytest.mark.parametrize("name", ["users", "order_items", "_private", "Col9", "a"])
    def test_accepts_plain_names(self, name):
        assert sanitize(name) == name
        assert isinstance(sanitize(name), Identifier)

    @pytest.mark.parametrize("name", [
        "", "9lives", "has space", "semi;colon", "dash-name",
        'quote"d', "users; DROP TABLE users", "tab\tname", "name\n",
    ])
    def test_rejects_malformed_names(self, name):
        with pytest.raises(InvalidIdentifier):
            sanitize(name)

    @pytest.mark.parametrize("name", ["select", "SELECT", "Table", "where", "drop"])
    def test_rejects_reserved_keywords(self, name):
        with pytest.raises(InvalidIdentifier):
            sanitize(name)

    def test_is_idempotent(self):
        once = sanitize("line_items")
        assert sanitize(once) == once
        assert sanitize(once) is once

    def test_non_string_rejected(self):
        with pytest.raises(InvalidIdentifier):
            sanitize(42)

    def test_is_valid_identifier(self):
        assert is_valid_identifier("products")
        assert not is_valid_identifier("from")
        assert not is_valid_identifier("x-y")


class TestQuoteIdentifier:
    """Quoting through the dialect preparer"""

    def test_quotes_sanitized_name(self):
        assert quote_identifier(sanitize("Items")) == '"Items"'

    def test_refuses_plain_string(self):
        with pytest.raises(InvalidIdentifier):
            quote_identifier("items")
