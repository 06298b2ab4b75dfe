"""Schemas module for persisted extension state.

Provides Pydantic models for:
- Extension types
- Ledger records
- Listing rows
"""

from .extension import (
    ExtensionRecord,
    ExtensionStatus,
    ExtensionType,
)

__all__ = [
    "ExtensionRecord",
    "ExtensionStatus",
    "ExtensionType",
]
