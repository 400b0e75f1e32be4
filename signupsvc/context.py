"""Request context carrying the caller's identity claims."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

USERNAME_KEY = "username"
EMAIL_KEY = "email"
SUB_KEY = "subject"
ORIGINAL_SUB_KEY = "original-sub"
GIVEN_NAME_KEY = "givenName"
FAMILY_NAME_KEY = "familyName"
COMPANY_KEY = "company"
USER_ID_KEY = "user_id"
ACCOUNT_ID_KEY = "account_id"


@dataclass
class RequestContext:
    """Values set for the current request, plus its query and headers.

    ``headers`` is None when there is no underlying HTTP request.
    """

    values: dict[str, Any] = field(default_factory=dict)
    query: dict[str, list[str]] = field(default_factory=dict)
    headers: dict[str, list[str]] | None = None

    @property
    def has_request(self) -> bool:
        return self.headers is not None

    def get_string(self, key: str) -> str:
        """Return the value for key if it is a string, else an empty string."""
        value = self.values.get(key)
        return value if isinstance(value, str) else ""

    def get_query(self, key: str) -> str | None:
        """Return the first value of a query parameter, or None if absent."""
        values = self.query.get(key)
        return values[0] if values else None

    def header_values(self, name: str) -> list[str] | None:
        """Return all values of a header, matched case-insensitively, or None."""
        if self.headers is None:
            return None
        wanted = name.lower()
        for header, values in self.headers.items():
            if header.lower() == wanted:
                return list(values)
        return None