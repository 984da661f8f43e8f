"""SQLAlchemy ORM models for database storage."""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class ImageModel(Base):
    """Gallery image database model.

    One row per image; tags live in ``img_tags``.
    """
    __tablename__ = "img_map"

    id = Column(String(36), primary_key=True)
    source_address = Column(String(255), nullable=False, unique=True)
    storage_key = Column(String(1024), nullable=False)
    origin_work_id = Column(BigInteger, nullable=False, index=True)
    visible = Column(Boolean, nullable=False, default=False, index=True)
    author = Column(String(255), nullable=True)
    author_id = Column(String(64), nullable=True, index=True)
    title = Column(String(512), nullable=True)
    deleted = Column(Boolean, nullable=False, default=False, index=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    image_key = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(
        DateTime,
        default=datetime.now,
        nullable=False,
        index=True
    )
    updated_at = Column(
        DateTime,
        default=datetime.now,
        onupdate=datetime.now,
        nullable=False
    )

    tags = relationship(
        "ImageTagModel",
        back_populates="image",
        cascade="all, delete-orphan",
        order_by="ImageTagModel.position",
    )

    def __repr__(self):
        return (
            f"<Image(id={self.id}, source={self.source_address}, "
            f"visible={self.visible})>"
        )


class ImageTagModel(Base):
    """Tag entry attached to an image, kept in insertion order."""
    __tablename__ = "img_tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    image_id = Column(
        String(36),
        ForeignKey("img_map.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(255), nullable=False, index=True)
    translation = Column(String(255), nullable=True)
    visible = Column(Boolean, nullable=True)

    image = relationship("ImageModel", back_populates="tags")

    def __repr__(self):
        return f"<ImageTag(image_id={self.image_id}, name={self.name})>"
