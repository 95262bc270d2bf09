"""File folder and file metadata models.

Blob contents live in external storage; these rows only track placement.
"""

from uuid import UUID

from sqlalchemy import BigInteger, Boolean, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from agencyhub.db.base import ArchiveMixin, BaseModel
from agencyhub.models.enums import FolderType


class FileFolder(BaseModel):
    """Folder in the project or client file tree."""

    __tablename__ = "file_folders"

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    folder_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default=FolderType.GENERAL.value
    )  # general, client_root, archive, posted_posts, task_archive, post_archive
    parent_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("file_folders.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    project_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    client_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, index=True)

    # Archive bookkeeping
    is_archive_root: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    task_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    social_post_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, index=True)

    created_by_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    def __repr__(self) -> str:
        return f"<FileFolder {self.name} ({self.folder_type})>"


class AgencyFile(BaseModel, ArchiveMixin):
    """Uploaded file attached to a project and optionally a task."""

    __tablename__ = "agency_files"

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    storage_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    project_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    task_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    folder_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("file_folders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    # Folder the file lived in before an archive move
    archived_from_folder_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    uploaded_by_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    def __repr__(self) -> str:
        return f"<AgencyFile {self.name}>"
