"""
Module: workflow_kernel.models.folder
Responsibility: ORM persistence for triage folders.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``parent_id`` references an existing folder (FK).  Cycles are not
      prevented at the database level; FolderAggregator rejects moves that
      would create one and tolerates corrupted data when building trees.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from workflow_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from workflow_kernel.domain.records import FolderNode


class FolderModel(Base):
    """Persistent triage folder."""

    __tablename__ = "folders"

    __table_args__ = (
        Index("ix_folders_parent", "parent_id"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("folders.id"), nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Folder {self.id} {self.name!r}>"

    def to_dto(self) -> FolderNode:
        from workflow_kernel.domain.records import FolderNode

        return FolderNode(id=self.id, name=self.name, parent_id=self.parent_id)
