"""
Database Models - Store Catalog and Accounts

This module defines the persistent records of the store:

- User: local account record linked to an identity provider account
- Category: product category with a unique, name-derived slug
- Product: catalog item referencing a category and a list of hosted images
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List
import uuid

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SQLEnum,
    Float,
    Index,
    Integer,
    JSON,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, foreign


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class UserRole(str, Enum):
    """User role enumeration"""
    USER = "user"
    ADMIN = "admin"


# =============================================================================
# ACCOUNTS
# =============================================================================

class User(Base):
    """
    Local User Record

    Exists only for accounts already provisioned in the identity provider.
    `keycloak_id` is the link to that account and is never reassigned.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    keycloak_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, values_callable=lambda e: [m.value for m in e]),
        default=UserRole.USER,
        nullable=False,
    )

    # Audit
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# =============================================================================
# CATALOG
# =============================================================================

class Category(Base):
    """
    Category Table

    `slug` is always slugify(name); both are unique.
    `image` holds a single hosted image URL, empty when the category has none.
    """
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(220), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    image: Mapped[Optional[str]] = mapped_column(String(1000), default="")

    # Audit
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_categories_created_at", "created_at"),
    )


class Product(Base):
    """
    Product Table

    `category_id` is required but deliberately not a foreign key: products may
    outlive their category, in which case `category` populates as None.
    """
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Product details
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    brand: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, default="")
    category_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    # Pricing and inventory
    price: Mapped[float] = mapped_column(Float, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Media and merchandising
    images: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Audit
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    category: Mapped[Optional[Category]] = relationship(
        Category,
        primaryjoin=lambda: foreign(Product.category_id) == Category.id,
        viewonly=True,
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_products_category_id", "category_id"),
        Index("ix_products_created_at", "created_at"),
        Index("ix_products_brand", "brand"),
    )
