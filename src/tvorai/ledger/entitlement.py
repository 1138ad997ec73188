"""Entitlement resolution.

Maps an external WordPress identity to the internal user row and the
subscription/balance pair that decides whether that user may spend.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from tvorai.db import repo
from tvorai.db.repo import DbSession
from tvorai.ledger.errors import UserNotFound
from tvorai.models.domain import Entitlement, UserEntity

logger = logging.getLogger(__name__)


def get_or_create_user(session: DbSession, wp_user_id: int, email: str | None = None) -> int:
    """Return the internal user id, creating the user on first contact.

    The insert runs inside a SAVEPOINT. If a concurrent transaction
    created the same identity first, only the savepoint is rolled back
    and the winner's row is read with a locking read (which sees the
    latest committed version).

    Args:
        session: Session with an open transaction.
        wp_user_id: External user identity.
        email: Optional email; stored if it differs from the current one.

    Returns:
        Internal user id.
    """
    user = repo.get_user_by_wp_id(session, wp_user_id, for_update=True)
    if user is None:
        try:
            with session.begin_nested():
                user = repo.create_user(session, wp_user_id, email)
            logger.info(f"Created user wp_user_id={wp_user_id} id={user.user_id}")
            return user.user_id
        except IntegrityError:
            user = repo.get_user_by_wp_id(session, wp_user_id, for_update=True)
            if user is None:
                raise

    if email and email != user.email:
        repo.update_user_email(session, user.user_id, email)
    return user.user_id


def find_user(session: DbSession, wp_user_id: int, *, lock: bool = False) -> UserEntity:
    """Read-only user lookup.

    Raises:
        UserNotFound: If no user has this identity.
    """
    user = repo.get_user_by_wp_id(session, wp_user_id, for_update=lock)
    if user is None:
        raise UserNotFound(wp_user_id)
    return user


def resolve_entitlement(
    session: DbSession, wp_user_id: int, *, lock: bool = False
) -> Entitlement:
    """Load the user with their current subscription and balance.

    Args:
        session: Database session.
        wp_user_id: External user identity.
        lock: Take row locks (users -> subscriptions -> credit_balances).

    Returns:
        Entitlement; subscription and balance may be None.

    Raises:
        UserNotFound: If no user has this identity.
    """
    user = find_user(session, wp_user_id, lock=lock)
    subscription = repo.get_subscription(session, user.user_id, for_update=lock)
    balance = repo.get_balance(session, user.user_id, for_update=lock)
    return Entitlement(user=user, subscription=subscription, balance=balance)
