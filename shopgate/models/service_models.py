"""
Service Layer Data Transfer Objects.

Generic result envelope returned across the repository and service
boundaries in place of raised backend exceptions.
"""

from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

__all__ = ["ServiceResult"]


class ServiceResult(BaseModel, Generic[T]):
    """
    Standard service return envelope.

    Repositories and administrative services return this, providing a
    consistent ``Ok``/``Err`` contract: ``success=True`` with ``data``, or
    ``success=False`` with ``error`` and an HTTP-style ``status_code``.

    Generic over ``T`` so callers can annotate return types precisely
    (e.g. ``ServiceResult[list[AccountRecord]]``).
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    status_code: int = 200

    @classmethod
    def ok(cls, data: Optional[T] = None, status_code: int = 200) -> "ServiceResult[T]":
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def fail(cls, error: str, status_code: int = 500) -> "ServiceResult[T]":
        return cls(success=False, error=error, status_code=status_code)
