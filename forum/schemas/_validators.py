"""Field checks shared by the request schemas."""

from __future__ import annotations


def check_text(value: str, max_bytes: int) -> str:
    if value == "":
        raise ValueError("must be provided")
    if len(value.encode("utf-8")) > max_bytes:
        raise ValueError(f"must not be more than {max_bytes} bytes long")
    return value
