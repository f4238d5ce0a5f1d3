from sqlalchemy.orm import relationship
from sqlalchemy import (
    BigInteger, Column, Integer, String, ForeignKey, DateTime, JSON, UniqueConstraint, CheckConstraint, and_, func,
)
from sqlalchemy.dialects.postgresql import JSONB

from saveable.config import get_settings
from saveable.core.db import Base
from saveable.core.registry import EntityMatch

_settings = get_settings()


class Save(Base):
    """
    One saver -> saveable association, optionally filed in a collection.
    order_column only orders saves sharing (saver, collection_id).
    """
    __tablename__ = _settings.saves_table
    __table_args__ = (
        UniqueConstraint("saver_type", "saver_id", "saveable_type", "saveable_id", name="unique_save"),
        CheckConstraint("order_column >= 0", name=f"ck_{_settings.saves_table}_order_column_non_negative"),
    )

    id = Column(Integer, primary_key=True)
    saver_type = Column(String(255), nullable=False)
    saver_id = Column(BigInteger, nullable=False)
    saveable_type = Column(String(255), nullable=False)
    saveable_id = Column(BigInteger, nullable=False)
    collection_id = Column(
        Integer,
        ForeignKey(f"{_settings.collections_table}.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    # "metadata" is reserved on declarative classes
    save_metadata = Column("metadata", JSON().with_variant(JSONB, "postgresql"), nullable=True)
    order_column = Column(Integer, nullable=False, default=0, server_default="0", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    collection = relationship("Collection", back_populates="saves")

    @classmethod
    def by_saver(cls, match: EntityMatch):
        return and_(cls.saver_type.in_(match.tags), cls.saver_id == match.id)

    @classmethod
    def by_saveable(cls, match: EntityMatch):
        return and_(cls.saveable_type.in_(match.tags), cls.saveable_id == match.id)

    @classmethod
    def by_collection(cls, collection_id):
        if collection_id is None:
            return cls.collection_id.is_(None)
        return cls.collection_id == collection_id

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Save id={self.id} saver={self.saver_type}:{self.saver_id} "
            f"saveable={self.saveable_type}:{self.saveable_id}>"
        )
