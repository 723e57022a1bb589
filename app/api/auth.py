"""Shared-secret check for scan triggers."""

import hmac
from typing import Optional


def is_authorized(
    secret: str,
    authorization: Optional[str],
    query_secret: Optional[str],
) -> bool:
    """Return ``True`` if a trigger may run.

    With no secret configured every invocation is allowed.  Otherwise either
    ``Authorization: Bearer <secret>`` or ``?secret=<secret>`` must match.
    """
    if not secret:
        return True
    if authorization is not None and hmac.compare_digest(
        authorization.encode(), f"Bearer {secret}".encode()
    ):
        return True
    if query_secret is not None and hmac.compare_digest(
        query_secret.encode(), secret.encode()
    ):
        return True
    return False
