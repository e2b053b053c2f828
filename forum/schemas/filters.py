"""Pagination / sorting parameters and the listing metadata block."""

from __future__ import annotations

import math

from pydantic import BaseModel, Field


class Filters(BaseModel):
    page: int = Field(default=1, ge=1, le=10_000_000)
    page_size: int = Field(default=20, ge=1, le=100)
    sort: str = "id"

    def sort_column(self) -> str:
        return self.sort.removeprefix("-")

    def sort_descending(self) -> bool:
        return self.sort.startswith("-")

    def limit(self) -> int:
        return self.page_size

    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class Metadata(BaseModel):
    current_page: int = 0
    page_size: int = 0
    first_page: int = 0
    last_page: int = 0
    total_records: int = 0

    @classmethod
    def calculate(cls, total_records: int, page: int, page_size: int) -> "Metadata":
        if total_records == 0:
            return cls()
        return cls(
            current_page=page,
            page_size=page_size,
            first_page=1,
            last_page=math.ceil(total_records / page_size),
            total_records=total_records,
        )
