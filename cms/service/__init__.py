from cms.service.attribute import AttributeService
from cms.service.base import BaseService
from cms.service.post import PostService
from cms.service.post_taxonomy import PostTaxonomyService
from cms.service.post_type import PostTypeService
from cms.service.term import TermService

__all__ = [
    "AttributeService",
    "BaseService",
    "PostService",
    "PostTaxonomyService",
    "PostTypeService",
    "TermService",
]
