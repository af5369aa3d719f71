"""
Identifier Sanitizer

Single choke point for every table and column name that is interpolated into
SQL text. Only ``Identifier`` instances are accepted by the query builder.
"""
import re
from typing import Union
from sqlalchemy.dialects import postgresql

from pgconsole.core.errors import InvalidIdentifier

DEFAULT_DIALECT = postgresql.dialect()

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

RESERVED_KEYWORDS = frozenset({
    "ALL", "ALTER", "AND", "ANY", "AS", "ASC", "BETWEEN", "BY", "CASE",
    "CAST", "CHECK", "COLUMN", "CONSTRAINT", "CREATE", "CROSS", "DATABASE",
    "DEFAULT", "DELETE", "DESC", "DISTINCT", "DROP", "ELSE", "END", "EXCEPT",
    "EXEC", "EXECUTE", "EXISTS", "FALSE", "FETCH", "FOREIGN", "FROM", "FULL",
    "GRANT", "GROUP", "HAVING", "IN", "INDEX", "INNER", "INSERT", "INTERSECT",
    "INTO", "IS", "JOIN", "LEFT", "LIKE", "LIMIT", "NOT", "NULL", "OFFSET",
    "ON", "OR", "ORDER", "OUTER", "PRIMARY", "REFERENCES", "RETURNING",
    "REVOKE", "RIGHT", "SCHEMA", "SELECT", "SET", "TABLE", "THEN", "TO",
    "TRUE", "TRUNCATE", "UNION", "UNIQUE", "UPDATE", "USING", "VALUES",
    "VIEW", "WHEN", "WHERE", "WITH",
})


class Identifier(str):
    """A table or column name that passed the sanitizer rules."""

    __slots__ = ()

    def __new__(cls, name: str):
        if isinstance(name, Identifier):
            return name
        if not isinstance(name, str) or not IDENTIFIER_PATTERN.fullmatch(name):
            raise InvalidIdentifier(f"Invalid identifier: {name!r}")
        if name.upper() in RESERVED_KEYWORDS:
            raise InvalidIdentifier(f"Reserved keyword cannot be used as identifier: {name!r}")
        return super().__new__(cls, name)


def sanitize(name: Union[str, Identifier]) -> Identifier:
    """Validate a name and return it unchanged as an ``Identifier``."""
    return Identifier(name)


def is_valid_identifier(name: str) -> bool:
    try:
        sanitize(name)
    except InvalidIdentifier:
        return False
    return True


def quote_identifier(identifier: Identifier, dialect=None) -> str:
    """Quote a sanitized identifier for SQL text using the dialect's preparer."""
    if not isinstance(identifier, Identifier):
        raise InvalidIdentifier(f"Unsanitized identifier cannot be quoted: {identifier!r}")
    return (dialect or DEFAULT_DIALECT).identifier_preparer.quote_identifier(identifier)
