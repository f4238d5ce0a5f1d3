from sqlalchemy.orm import relationship
from sqlalchemy import BigInteger, Column, Integer, String, Text, ForeignKey, DateTime, Index, and_, func

from saveable.config import get_settings
from saveable.core.db import Base
from saveable.core.registry import EntityMatch

_settings = get_settings()


class Collection(Base):
    """
    Folder owned by one entity, nested through parent_id.
    Deleting one removes its descendants and unlinks their saves (see CollectionService.delete).
    """
    __tablename__ = _settings.collections_table
    __table_args__ = (
        Index(f"ix_{_settings.collections_table}_owner", "owner_type", "owner_id"),
    )

    id = Column(Integer, primary_key=True)
    owner_type = Column(String(255), nullable=False)
    owner_id = Column(BigInteger, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    parent_id = Column(Integer, ForeignKey(f"{_settings.collections_table}.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    parent = relationship("Collection", remote_side=[id], back_populates="children")
    children = relationship("Collection", back_populates="parent", order_by="Collection.id")
    saves = relationship("Save", back_populates="collection", order_by="Save.order_column")

    @classmethod
    def by_owner(cls, match: EntityMatch):
        return and_(cls.owner_type.in_(match.tags), cls.owner_id == match.id)

    @classmethod
    def by_parent(cls, parent_id):
        if parent_id is None:
            return cls.parent_id.is_(None)
        return cls.parent_id == parent_id

    def owned_by(self, match: EntityMatch) -> bool:
        return self.owner_type in match.tags and self.owner_id == match.id

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Collection id={self.id} name={self.name!r} owner={self.owner_type}:{self.owner_id}>"
