from __future__ import annotations

from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

Base = declarative_base()


class ProductMapping(Base):
    __tablename__ = "product_mappings"
    __table_args__ = (UniqueConstraint("tenant_id", "keyword", name="uq_product_mappings_tenant_keyword"),)

    id = Column(String, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    keyword = Column(String, nullable=False)
    product_id = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Synonym(Base):
    __tablename__ = "synonyms"
    __table_args__ = (UniqueConstraint("tenant_id", "synonym", name="uq_synonyms_tenant_synonym"),)

    id = Column(String, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    synonym = Column(String, nullable=False)
    product_id = Column(String, nullable=False)
    source = Column(String, default="manual")
    is_active = Column(Integer, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class IgnoredWord(Base):
    __tablename__ = "ignored_words"
    __table_args__ = (UniqueConstraint("tenant_id", "word", name="uq_ignored_words_tenant_word"),)

    id = Column(String, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    word = Column(String, nullable=False)
    reason = Column(Text)
    is_active = Column(Integer, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
