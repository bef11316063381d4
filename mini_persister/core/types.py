"""Shared core type aliases used across contracts, mapping, and ports."""

from __future__ import annotations

from typing import Any, Mapping, Tuple

PositionalParams = Tuple[Any, ...]

RowMapping = Mapping[str, Any]
