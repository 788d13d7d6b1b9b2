"""Shared type aliases."""

from __future__ import annotations

from typing import Any, TypeAlias

# JSON-like dict (entry metadata, API payloads, serialized reports)
JsonDict: TypeAlias = dict[str, Any]
