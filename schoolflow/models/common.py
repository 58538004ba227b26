# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared value types used across the enrollment and transfer domains."""

from __future__ import annotations

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

# Store identifiers are opaque; integers in practice, strings tolerated.
RecordId = int | str

T = TypeVar("T")


class StoreModel(BaseModel):
    """Base for records parsed from the record store.

    Unknown fields are kept so that nothing the store sends is lost
    when a record is passed back to a caller.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ClassRef(StoreModel):
    """Reference to a class (section of a level)."""

    id: RecordId
    name: str | None = None
    full_name: str | None = None
    level: str | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.name or f"Class {self.id}"


class StudentRef(StoreModel):
    """Minimal student identity as embedded in workflows and transfers."""

    id: RecordId
    first_name: str | None = None
    last_name: str | None = None
    full_name: str | None = None
    matricule: str | None = None  # school-issued external identifier

    @property
    def display_name(self) -> str:
        if self.full_name:
            return self.full_name
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or f"Student {self.id}"


class SchoolRef(StoreModel):
    """Minimal school identity."""

    id: RecordId
    name: str | None = None
    name_abrev: str | None = None
    city: str | None = None


class Actor(BaseModel):
    """The operator performing an action, scoped to a school."""

    school_id: RecordId | None = None
    user_id: RecordId | None = None


class Page(BaseModel, Generic[T]):
    """One page of a paginated store listing."""

    results: list[T] = Field(default_factory=list)
    count: int = 0
    total_pages: int = 1
    next: str | None = None
    previous: str | None = None

    @property
    def ids(self) -> list[RecordId]:
        """Ids of the rows on this page, in display order."""
        return [row.id for row in self.results]  # type: ignore[attr-defined]

    @classmethod
    def empty(cls) -> "Page[T]":
        return cls(results=[], count=0, total_pages=0)

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None, page_size: int) -> "Page[T]":
        """Build a page from a store listing payload.

        The store may omit ``total_pages``; it is then derived from the
        count and page size, with at least one page.

        Args:
            payload: Decoded JSON body (``count``, ``results``, ...).
            page_size: Page size that was requested.

        Returns:
            Parsed page.
        """
        payload = payload or {}
        count = int(payload.get("count") or 0)
        total_pages = payload.get("total_pages")
        if total_pages is None:
            total_pages = math.ceil(count / page_size) if page_size else 1
            total_pages = total_pages or 1
        return cls.model_validate(
            {
                "results": payload.get("results") or [],
                "count": count,
                "total_pages": total_pages,
                "next": payload.get("next"),
                "previous": payload.get("previous"),
            }
        )


class EducationSystemRef(StoreModel):
    """Education system a class belongs to (e.g. anglophone, francophone)."""

    id: RecordId
    code: str | None = None
    is_english: bool | None = None
    is_technical: bool | None = None


class SchoolClass(ClassRef):
    """Full class record as listed by the school's class directory."""

    education_system: EducationSystemRef | None = None
    stream: str | None = None
    section: str | None = None
    is_active: bool = True
