from cms.repository.attribute import AttributeRepository, AttributeValueRepository
from cms.repository.base import Repository
from cms.repository.post import PostRepository
from cms.repository.post_taxonomy import PostTaxonomyRepository
from cms.repository.post_type import PostTypeRepository
from cms.repository.sql import EavRepositoryMixin, SqlAlchemyRepository
from cms.repository.term import TermRepository

__all__ = [
    "AttributeRepository",
    "AttributeValueRepository",
    "EavRepositoryMixin",
    "PostRepository",
    "PostTaxonomyRepository",
    "PostTypeRepository",
    "Repository",
    "SqlAlchemyRepository",
    "TermRepository",
]
