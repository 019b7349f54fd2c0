"""Document, Result and Share models.

A Document is one accepted upload. It has at most one Result (unique
document_id) and any number of Shares. Deleting a Document cascades to both.
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, JSON, Boolean, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from bridge.database import Base
from bridge.db_models_users import enum_column
from bridge.enums import Domain
from bridge.utils.dates import utcnow
from bridge.utils.id_generator import generate_id

# JSONB on Postgres, plain JSON elsewhere (tests run on SQLite)
JSONType = JSON().with_variant(JSONB, "postgresql")


class Document(Base):
    """One uploaded file owned by one user. Ownership never changes."""
    __tablename__ = "documents"
    __table_args__ = (
        Index("idx_documents_user_id_uploaded_at", "user_id", "uploaded_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    family_id = Column(String(36), nullable=True)

    # File metadata
    blob_url = Column(String(1024), nullable=False)
    filename = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)
    page_count = Column(Integer, nullable=True)  # not inferred at upload time

    uploaded_at = Column(DateTime, default=utcnow, nullable=False)

    result = relationship(
        "Result",
        back_populates="document",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    shares = relationship(
        "Share",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Result(Base):
    """Translation output for exactly one document. Immutable once written."""
    __tablename__ = "results"

    id = Column(String(36), primary_key=True, default=generate_id)
    document_id = Column(
        String(36),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    translation_html = Column(Text, nullable=False)
    summary = Column(JSONType, nullable=False)  # {purpose, actions, due_dates?, costs?}
    detected_language = Column(String(16), nullable=False)
    target_language = Column(String(16), nullable=False, default="en")
    domain = Column(enum_column(Domain), nullable=True)
    confidence = Column(Integer, nullable=False)
    processing_time_ms = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    document = relationship("Document", back_populates="result")


class Share(Base):
    """Time-boxed public grant for one document; the token is a bearer credential."""
    __tablename__ = "shares"

    id = Column(String(36), primary_key=True, default=generate_id)
    document_id = Column(
        String(36),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_by = Column(String(64), ForeignKey("users.id"), nullable=False)
    token = Column(String(128), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    can_download = Column(Boolean, default=True, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)
    last_viewed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    document = relationship("Document", back_populates="shares")
