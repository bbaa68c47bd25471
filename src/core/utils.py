"""
Small shared utilities.
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Generator


@contextmanager
def timer() -> Generator[dict, None, None]:
    """Context manager that records elapsed wall-clock milliseconds."""
    result: dict = {}
    start = time.perf_counter()
    try:
        yield result
    finally:
        result["elapsed_ms"] = round((time.perf_counter() - start) * 1000, 3)


def indent_block(text: str, indent: str) -> str:
    """Indent every non-blank line of *text*; blank lines stay empty."""
    return "\n".join(f"{indent}{line}" if line.strip() else "" for line in text.split("\n"))
