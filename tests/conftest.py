import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cms.cache import TypeMapCache
from cms.db import Base
from cms.repository import (
    AttributeRepository,
    AttributeValueRepository,
    PostRepository,
    PostTaxonomyRepository,
    PostTypeRepository,
    TermRepository,
)
from cms.service import (
    AttributeService,
    PostService,
    PostTaxonomyService,
    PostTypeService,
    TermService,
)
from cms.transaction import SqlAlchemyTransactionManager


def make_session_factory(url: str = "sqlite:///:memory:") -> sessionmaker:
    if url == "sqlite:///:memory:":
        engine = create_engine(
            url, connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
    else:
        engine = create_engine(url)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def session_factory() -> sessionmaker:
    return make_session_factory()


@pytest.fixture
def transactions(session_factory) -> SqlAlchemyTransactionManager:
    return SqlAlchemyTransactionManager(session_factory)


@pytest.fixture
def cache() -> TypeMapCache:
    return TypeMapCache()


@pytest.fixture
def post_type_repo(cache) -> PostTypeRepository:
    return PostTypeRepository(cache=cache)


@pytest.fixture
def post_repo(cache) -> PostRepository:
    return PostRepository(cache=cache)


@pytest.fixture
def post_type_service(post_type_repo, transactions, cache) -> PostTypeService:
    return PostTypeService(post_type_repo, transactions, cache)


@pytest.fixture
def taxonomy_service(transactions, cache) -> PostTaxonomyService:
    return PostTaxonomyService(PostTaxonomyRepository(cache=cache), transactions, cache)


@pytest.fixture
def term_service(transactions, cache) -> TermService:
    return TermService(
        TermRepository(cache=cache), transactions, cache, PostTaxonomyRepository(cache=cache)
    )


@pytest.fixture
def attribute_service(transactions, cache, post_repo) -> AttributeService:
    return AttributeService(
        AttributeRepository(cache=cache),
        transactions,
        cache,
        entity_tables={post_repo.entity_type: post_repo.get_table_name()},
    )


@pytest.fixture
def post_service(post_repo, post_type_repo, transactions, cache) -> PostService:
    return PostService(
        post_repo,
        transactions,
        cache,
        post_types=post_type_repo,
        terms=TermRepository(cache=cache),
        attributes=AttributeRepository(cache=cache),
        attribute_values=AttributeValueRepository(cache=cache),
    )
