"""Caller identity dependency for FastAPI."""
from typing import Annotated

from fastapi import Header, HTTPException, status

from learnhub.utils.validation import validate_id


def get_caller_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Get the id of the calling learner from the ``X-User-Id`` header.

    Raises:
        HTTPException: 401 if the header is missing.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return validate_id("userId", x_user_id)
