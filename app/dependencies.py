"""
Request Dependencies

Identity comes from a trusted upstream auth proxy as X-User-* headers.
Only X-User-Id is required; the rest fill in the profile the first time
a user is seen.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from src.errors import UnauthorizedError
from src.models import UserIdentity, UserOut
from src.orchestrator import LedgerServices


def get_services(request: Request) -> LedgerServices:
    return request.app.state.services


def get_current_user(
    services: LedgerServices = Depends(get_services),
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_first_name: Optional[str] = Header(default=None),
    x_user_last_name: Optional[str] = Header(default=None),
    x_user_country: Optional[str] = Header(default=None),
) -> UserOut:
    """
    Resolve the caller to a local user, creating it on first sight.

    Raises:
        UnauthorizedError: no X-User-Id header
    """
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError()

    country = (x_user_country or "").strip().upper()
    identity = UserIdentity(
        external_id=x_user_id.strip(),
        email=x_user_email,
        first_name=x_user_first_name,
        last_name=x_user_last_name,
        country=country if len(country) == 2 else None,
    )
    user, created = services.store.ensure_user(identity)
    if created:
        services.audit.log_user_created(user.id, identity.external_id)
    return user
