"""Enums and value objects used across the domain."""
from enum import Enum


class IdentifierType(str, Enum):
    """Namespace of a throttled identifier in the spam-prevention table."""

    EMAIL = "email"
    IP = "ip"
    USER = "user"

    @staticmethod
    def parse(value) -> "IdentifierType | None":
        """Coerce a raw value into an IdentifierType. ``None`` stays ``None``.

        Raises ValueError for anything that is not a known type.
        """
        if value is None or isinstance(value, IdentifierType):
            return value
        try:
            return IdentifierType(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown identifier type '{value}'. "
                f"Expected one of: {', '.join(t.value for t in IdentifierType)}."
            ) from None


class ThrottledAction(str, Enum):
    LOGIN = "login"
    SIGNUP = "signup"
