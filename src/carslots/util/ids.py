from __future__ import annotations

import uuid


def new_uuid() -> str:
    """Generate a UUID4 string."""
    return str(uuid.uuid4())


def new_link_id() -> str:
    """Generate a new Link ID."""
    return new_uuid()


def new_lock_token() -> str:
    """Generate a token identifying one lock acquisition."""
    return new_uuid()
