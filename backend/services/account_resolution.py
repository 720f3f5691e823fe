"""Resolve which local Account a LinkedAccount currently points at."""

import logging

from models import Account, LinkedAccount

logger = logging.getLogger(__name__)


def resolve_current_account(linked_account: LinkedAccount) -> Account | None:
    """Return the authoritative local account for a linked account.

    A linked account may carry both a current link and a legacy link left
    over from migration. The current link wins when both exist.

    Args:
        linked_account: LinkedAccount with ``account`` and ``legacy_account``
            loaded (or lazily loadable).

    Returns:
        The resolved Account, or None when the linked account is unlinked.
    """
    current = linked_account.account
    legacy = linked_account.legacy_account

    if current is not None:
        if legacy is not None and legacy.id != current.id:
            logger.debug(
                "Linked account %s has both current (%s) and legacy (%s) links; using current",
                linked_account.external_id, current.id, legacy.id,
            )
        return current
    return legacy


def resolved_accounts(linked_accounts: list[LinkedAccount]) -> list[Account]:
    """Resolved accounts for a set of linked accounts, deduplicated, in order."""
    seen: set[str] = set()
    result = []
    for linked in linked_accounts:
        account = resolve_current_account(linked)
        if account is None or account.id in seen:
            continue
        seen.add(account.id)
        result.append(account)
    return result


def count_linked(linked_accounts: list[LinkedAccount]) -> int:
    """Number of linked accounts that resolve to a local account.

    Not deduplicated: two linked accounts sharing one local account both
    count as linked.
    """
    return sum(1 for linked in linked_accounts if resolve_current_account(linked) is not None)
