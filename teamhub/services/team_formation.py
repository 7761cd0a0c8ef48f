"""Chunking of approved applicants into fixed-size groups."""

from __future__ import annotations

import os
from typing import List, Mapping, Sequence, Tuple, TypeVar

from dotenv import load_dotenv

load_dotenv()

T = TypeVar("T")

MINIMUM_GROUP_SIZE = 2


def group_size_from_env(env: Mapping[str, str]) -> int:
    """``GROUP_SIZE`` as an int, at least ``MINIMUM_GROUP_SIZE``; defaults to 4."""
    raw = env.get("GROUP_SIZE", "4")
    try:
        size = int(raw)
    except ValueError:
        raise RuntimeError(f"GROUP_SIZE must be an integer, got {raw!r}") from None
    if size < MINIMUM_GROUP_SIZE:
        raise RuntimeError(f"GROUP_SIZE must be at least {MINIMUM_GROUP_SIZE}, got {size}")
    return size


DEFAULT_GROUP_SIZE = group_size_from_env(os.environ)


def partition_groups(
    items: Sequence[T],
    size: int = DEFAULT_GROUP_SIZE,
    minimum: int = MINIMUM_GROUP_SIZE,
) -> Tuple[List[List[T]], List[T]]:
    """Split ``items`` into consecutive chunks of ``size``.

    Chunks shorter than ``minimum`` cannot form a team and are returned as the
    leftover instead. Only the final chunk can be short, so with the defaults
    the leftover is either empty or a single item (``len(items) % 4 == 1``).
    """
    if size < 1:
        raise ValueError("size must be positive")
    if minimum < 1 or minimum > size:
        raise ValueError("minimum must be between 1 and size")

    groups: List[List[T]] = []
    leftover: List[T] = []
    for start in range(0, len(items), size):
        chunk = list(items[start:start + size])
        if len(chunk) >= minimum:
            groups.append(chunk)
        else:
            leftover.extend(chunk)
    return groups, leftover
