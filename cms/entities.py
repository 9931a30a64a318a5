from datetime import date, datetime, time
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from cms.filters import ScalarType


class Entity(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    uid: UUID
    version: int
    created_at: datetime
    updated_at: datetime


IMMUTABLE_FIELDS = frozenset(Entity.model_fields)


class PostType(Entity):
    code: str
    name: str


class PostTypeCreate(BaseModel):
    code: str
    name: str


class PostTypeUpdate(BaseModel):
    version: int
    code: Optional[str] = None
    name: Optional[str] = None


class PostTaxonomy(Entity):
    code: str
    name: str


class PostTaxonomyCreate(BaseModel):
    code: str
    name: str


class PostTaxonomyUpdate(BaseModel):
    version: int
    code: Optional[str] = None
    name: Optional[str] = None


class Term(Entity):
    taxonomy_id: int
    parent_id: Optional[int] = None
    slug: str
    name: str
    description: Optional[str] = None


class TermCreate(BaseModel):
    taxonomy_id: int
    parent_id: Optional[int] = None
    slug: str
    name: str
    description: Optional[str] = None


class TermUpdate(BaseModel):
    version: int
    parent_id: Optional[int] = None
    slug: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None


class Post(Entity):
    slug: str
    title: str
    summary: Optional[str] = None
    content: Optional[str] = None
    status: str
    visibility: str
    format: str
    published_at: Optional[datetime] = None
    user_id: int
    type_id: int


class PostCreate(BaseModel):
    slug: str
    title: str
    summary: Optional[str] = None
    content: Optional[str] = None
    status: str = "DRAFT"
    visibility: str = "public"
    format: str = "markdown"
    published_at: Optional[datetime] = None
    user_id: int
    type_id: int


class PostUpdate(BaseModel):
    version: int
    slug: Optional[str] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    content: Optional[str] = None
    status: Optional[str] = None
    visibility: Optional[str] = None
    format: Optional[str] = None
    published_at: Optional[datetime] = None


class Attribute(Entity):
    name: str
    entity_type: str
    data_type: ScalarType


class AttributeCreate(BaseModel):
    name: str
    entity_type: str
    data_type: ScalarType


class AttributeValue(Entity):
    attribute_id: int
    entity_id: int
    entity_type: str
    int_value: Optional[int] = None
    double_value: Optional[float] = None
    string_value: Optional[str] = None
    boolean_value: Optional[bool] = None
    date_value: Optional[date] = None
    datetime_value: Optional[datetime] = None
    time_value: Optional[time] = None


class AttributeValueCreate(BaseModel):
    attribute_id: int
    entity_id: int
    entity_type: str
    int_value: Optional[int] = None
    double_value: Optional[float] = None
    string_value: Optional[str] = None
    boolean_value: Optional[bool] = None
    date_value: Optional[date] = None
    datetime_value: Optional[datetime] = None
    time_value: Optional[time] = None
