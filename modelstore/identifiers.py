"""
Identifier generation for new external entities.

Identifiers only disambiguate entities inside one store; they are not
suitable as security tokens.
"""
from uuid import uuid4


def generate_id() -> str:
    """Return a random UUID4 string."""
    return str(uuid4())
