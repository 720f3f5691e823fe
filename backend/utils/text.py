"""Small text helpers for user-facing status strings."""


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Return the singular form for a count of exactly 1, else the plural.

    >>> pluralize(1, "account")
    'account'
    >>> pluralize(3, "account")
    'accounts'
    """
    if count == 1:
        return singular
    return plural if plural is not None else f"{singular}s"
