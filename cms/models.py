from datetime import date, datetime, time
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    Time,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from cms.db import Base

ID_TYPE = BigInteger().with_variant(Integer, "sqlite")
REF_TYPE = BigInteger().with_variant(Integer, "sqlite")


class EntityMixin:
    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    uid: Mapped[UUID] = mapped_column(Uuid, nullable=False, unique=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class User(EntityMixin, Base):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    password: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class PostType(EntityMixin, Base):
    __tablename__ = "post_types"

    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class Post(EntityMixin, Base):
    __tablename__ = "posts"
    __table_args__ = (
        UniqueConstraint("type_id", "slug", name="UN_posts_type_slug"),
        CheckConstraint(
            "status IN ('DRAFT','REVIEW','PUBLISHED','ARCHIVED','DELETED')",
            name="CK_posts_status",
        ),
        CheckConstraint(
            "visibility IN ('public','private','unlisted','members')",
            name="CK_posts_visibility",
        ),
        CheckConstraint(
            "format IN ('markdown','html','mdx','plaintext')",
            name="CK_posts_format",
        ),
        Index("IDX_posts_user_id_status", "user_id", "status"),
        Index("IDX_posts_published_visibility", "published_at", "visibility"),
    )

    slug: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str | None] = mapped_column(Text)
    content: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="DRAFT")
    visibility: Mapped[str] = mapped_column(Text, nullable=False, default="public")
    format: Mapped[str] = mapped_column(Text, nullable=False, default="markdown")
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    user_id: Mapped[int] = mapped_column(
        REF_TYPE, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type_id: Mapped[int] = mapped_column(
        REF_TYPE, ForeignKey("post_types.id", ondelete="CASCADE"), nullable=False
    )


class PostTaxonomy(EntityMixin, Base):
    __tablename__ = "post_taxonomies"

    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class Term(EntityMixin, Base):
    __tablename__ = "terms"
    __table_args__ = (
        UniqueConstraint("taxonomy_id", "slug", name="UN_terms_taxonomy_id_slug"),
        Index("IDX_terms_taxonomy_parent", "taxonomy_id", "parent_id"),
    )

    taxonomy_id: Mapped[int] = mapped_column(
        REF_TYPE, ForeignKey("post_taxonomies.id", ondelete="CASCADE"), nullable=False
    )
    parent_id: Mapped[int | None] = mapped_column(
        REF_TYPE, ForeignKey("terms.id", ondelete="SET NULL")
    )
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)


class PostTerm(Base):
    __tablename__ = "post_terms"

    post_id: Mapped[int] = mapped_column(
        REF_TYPE, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    term_id: Mapped[int] = mapped_column(
        REF_TYPE, ForeignKey("terms.id", ondelete="CASCADE"), primary_key=True, index=True
    )


class PostCollection(EntityMixin, Base):
    __tablename__ = "post_collections"
    __table_args__ = (
        CheckConstraint(
            "visibility IN ('public','private','unlisted')",
            name="CK_post_collections_visibility",
        ),
    )

    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    visibility: Mapped[str] = mapped_column(Text, nullable=False, default="public")


class PostCollectionItem(Base):
    __tablename__ = "post_collection_items"
    __table_args__ = (
        UniqueConstraint(
            "post_collection_id", "position", name="UN_post_collection_items_position"
        ),
        CheckConstraint("position > 0", name="CK_post_collection_items_position"),
    )

    post_collection_id: Mapped[int] = mapped_column(
        REF_TYPE, ForeignKey("post_collections.id", ondelete="CASCADE"), primary_key=True
    )
    post_id: Mapped[int] = mapped_column(
        REF_TYPE, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    headline: Mapped[str | None] = mapped_column(Text)


class PostRelation(Base):
    __tablename__ = "post_relations"
    __table_args__ = (
        CheckConstraint(
            "rel_type IN ('related','next','prev','see_also')",
            name="CK_post_relations_type",
        ),
    )

    from_post: Mapped[int] = mapped_column(
        REF_TYPE, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    to_post: Mapped[int] = mapped_column(
        REF_TYPE, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    rel_type: Mapped[str] = mapped_column(Text, primary_key=True)


class Attribute(EntityMixin, Base):
    __tablename__ = "attributes"
    __table_args__ = (
        UniqueConstraint("entity_type", "name", name="UN_attributes_entity_type_name"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    entity_type: Mapped[str] = mapped_column(Text, nullable=False)
    data_type: Mapped[str] = mapped_column(Text, nullable=False)


class AttributeValue(EntityMixin, Base):
    __tablename__ = "attribute_values"
    __table_args__ = (
        UniqueConstraint(
            "entity_type",
            "entity_id",
            "attribute_id",
            name="UN_attribute_values_entity_type_entity_id_attribute_id",
        ),
    )

    int_value: Mapped[int | None] = mapped_column(Integer)
    double_value: Mapped[float | None] = mapped_column(Float(precision=53))
    string_value: Mapped[str | None] = mapped_column(Text)
    boolean_value: Mapped[bool | None] = mapped_column(Boolean)
    date_value: Mapped[date | None] = mapped_column(Date)
    datetime_value: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    time_value: Mapped[time | None] = mapped_column(Time)
    attribute_id: Mapped[int] = mapped_column(
        REF_TYPE, ForeignKey("attributes.id", ondelete="CASCADE"), nullable=False
    )
    entity_id: Mapped[int] = mapped_column(REF_TYPE, nullable=False)
    entity_type: Mapped[str] = mapped_column(Text, nullable=False)
