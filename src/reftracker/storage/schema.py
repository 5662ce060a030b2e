"""SQLAlchemy ORM schema for the SQL object store.

Defines all database tables: pools, objects, xattrs, omap, _store_meta.
An object row carries the store-maintained version used for conditional
writes; attributes and omap entries hang off it by (pool, name).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    ForeignKeyConstraint,
    Integer,
    LargeBinary,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all object store ORM models."""

    pass


class PoolRow(Base):
    """A named namespace of objects."""

    __tablename__ = "pools"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class ObjectRow(Base):
    """A stored object: body bytes plus its write generation."""

    __tablename__ = "objects"

    pool: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("pools.name", ondelete="CASCADE"),
        primary_key=True,
    )
    name: Mapped[str] = mapped_column(String(1024), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False, default=b"")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class XattrRow(Base):
    """Extended attribute of an object."""

    __tablename__ = "xattrs"

    pool: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(1024), primary_key=True)
    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    __table_args__ = (
        ForeignKeyConstraint(
            ["pool", "name"],
            ["objects.pool", "objects.name"],
            ondelete="CASCADE",
        ),
    )


class OmapRow(Base):
    """One omap entry of an object."""

    __tablename__ = "omap"

    pool: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(1024), primary_key=True)
    key: Mapped[str] = mapped_column(String(1024), primary_key=True)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False, default=b"")

    __table_args__ = (
        ForeignKeyConstraint(
            ["pool", "name"],
            ["objects.pool", "objects.name"],
            ondelete="CASCADE",
        ),
    )


class StoreMetaRow(Base):
    """Key-value metadata about the store database itself."""

    __tablename__ = "_store_meta"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(String(255), nullable=False)
