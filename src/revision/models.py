# src/revision/models.py - v1
"""Revision record: original path -> revisioned path, plus rewritten references."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RevisionRecord(BaseModel):
    """Outcome of one revisioning pass over an artifact tree.

    entries maps each original relative path to its revisioned path.
    references maps each original path to the sorted files in which a
    reference to it was rewritten during this pass.
    """

    entries: dict[str, str] = Field(default_factory=dict)
    references: dict[str, list[str]] = Field(default_factory=dict)

    def revisioned(self, original: str) -> str | None:
        return self.entries.get(original)

    @property
    def rewritten_files(self) -> list[str]:
        files = {f for refs in self.references.values() for f in refs}
        return sorted(files)
