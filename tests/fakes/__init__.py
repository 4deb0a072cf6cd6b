"""Shared test doubles — re-export memory backends."""

from __future__ import annotations

from academy.persistence.memory_backend import MemoryCacheBackend, MemoryDocumentStore

__all__ = ["MemoryCacheBackend", "MemoryDocumentStore"]
