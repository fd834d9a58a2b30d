from __future__ import annotations

from typing import Any

from fastapi import status


class AppError(Exception):
    """Base for domain failures the HTTP layer maps onto an ``ErrorResponse``."""

    code = "APP_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: Any = None) -> None:
        super().__init__(detail)
        self.detail = detail if detail is not None else self.code


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class SlugValidationError(AppError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: Any = None, *, problem: str | None = None) -> None:
        super().__init__(detail)
        self.problem = problem


class SlugExistsError(AppError):
    code = "SLUG_EXISTS"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, detail: Any = None, *, slug: str | None = None) -> None:
        super().__init__(detail)
        self.slug = slug


class RedirectCycleError(AppError):
    code = "REDIRECT_CYCLE"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, detail: Any = None, *, chain_length: int = 0) -> None:
        super().__init__(detail)
        self.chain_length = chain_length


class ChainTooDeepError(RedirectCycleError):
    code = "CHAIN_TOO_DEEP"
