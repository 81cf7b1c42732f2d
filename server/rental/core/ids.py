"""Parsing of public string identifiers into primary keys."""

from uuid import UUID

from .exceptions import NotFoundError


def parse_id(value: str, resource_type: str) -> UUID:
    """
    Parse a UUID string, treating malformed ids as unknown resources.

    Raises:
        NotFoundError: If the value is not a valid UUID
    """
    try:
        return UUID(str(value))
    except ValueError:
        raise NotFoundError(resource_type=resource_type, resource_id=str(value))
