"""
Tests for the SQLAlchemy store, filters and the SQLAlchemy-backed services.
"""

import pytest

from data_crud.repositories.sql import (
    ExpressionSpecification,
    SpecificationSqlAlchemyStore,
    SqlAlchemyStore,
    wildcard_to_like,
)
from data_crud.services.hooks import CallbackHooks
from data_crud.services.operations import CrudOperation
from data_crud.services.rsql import parse_query
from data_crud.services.search import (
    PageRequest,
    Sort,
    create_search_base_options,
    create_search_options,
)
from data_crud.services.standard import SqlAlchemyReadService, SqlAlchemyWriteService
from shared.utils.exceptions import InvalidQueryError, NotFoundEntityError
from tests.models import Foo, FooInput


def names(entities):
    return sorted(e.name for e in entities)


@pytest.fixture
def store(db_session):
    return SqlAlchemyStore(db_session, Foo)


def search(store, text=None, query=None, pageable=None):
    pageable = pageable or PageRequest.unpaged()
    return store.search(create_search_options(text, pageable, parse_query(query)))


class TestLookups:
    def test_find_by_id(self, store, seed_foos):
        assert store.find_by_id(seed_foos[0].id).name == "alpha"
        assert store.find_by_id(999) is None

    def test_find_all_by_ids_skips_missing(self, store, seed_foos):
        found = store.find_all_by_ids([seed_foos[1].id, 999, seed_foos[3].id])
        assert names(found) == ["beta", "delta"]

    def test_find_all_by_no_ids(self, store, seed_foos):
        assert store.find_all_by_ids([]) == []

    def test_exists(self, store, seed_foos):
        assert store.exists(seed_foos[0].id) is True
        assert store.exists(999) is False

    def test_default_search_fields_are_string_columns(self, store):
        assert set(store.search_fields) == {"name", "description"}


class TestTextSearch:
    def test_case_insensitive_over_search_fields(self, store, seed_foos):
        assert names(search(store, "ALP")) == ["alpha"]
        assert names(search(store, "river")) == ["delta"]

    def test_like_metacharacters_match_literally(self, store, seed_foos):
        assert names(search(store, "%")) == ["beta"]
        assert search(store, "_") == []

    def test_explicit_search_fields(self, db_session, seed_foos):
        store = SqlAlchemyStore(db_session, Foo, search_fields=["name"])
        assert search(store, "river") == []


class TestFilters:
    @pytest.mark.parametrize(
        "query,expected",
        [
            ("quantity=gt=2", ["delta", "epsilon", "gamma"]),
            ("quantity>=4", ["delta", "epsilon"]),
            ("quantity=in=(1,3)", ["alpha", "gamma"]),
            ("quantity=out=(1,3)", ["beta", "delta", "epsilon"]),
            ("name==*ta", ["beta", "delta"]),
            ("name!=*ta", ["alpha", "epsilon", "gamma"]),
            ("name=like=lph", ["alpha"]),
            ("description=ilike=RIVER*", ["delta"]),
            ("description=isnull=true", ["gamma"]),
            ("description=notnull=true", ["alpha", "beta", "delta", "epsilon"]),
            ("active==false", ["epsilon"]),
            ("owner.name==Ann", ["alpha", "gamma"]),
            ("quantity=lt=2,quantity=gt=4", ["alpha", "epsilon"]),
            ("active==true;(name==beta,name==delta)", ["beta", "delta"]),
        ],
    )
    def test_query(self, store, seed_foos, query, expected):
        assert names(search(store, query=query)) == expected

    def test_search_and_query_combine_with_and(self, store, seed_foos):
        assert names(search(store, "a", "quantity=lt=3")) == ["alpha", "beta"]

    @pytest.mark.parametrize("query", ["colour==red", "owner.colour==x", "name.first==y"])
    def test_unknown_selector(self, store, seed_foos, query):
        with pytest.raises(InvalidQueryError) as exc_info:
            search(store, query=query)
        assert exc_info.value.status_code == 400
        assert "unknown selector" in exc_info.value.reason

    def test_unconvertible_argument(self, store, seed_foos):
        with pytest.raises(InvalidQueryError) as exc_info:
            search(store, query="quantity=gt=many")
        assert exc_info.value.reason == "cannot convert 'many' to int"

    def test_wildcard_to_like(self):
        assert wildcard_to_like("a_b*") == "a\\_b%"
        assert wildcard_to_like("*50%") == "%50\\%"


class TestPagingAndSorting:
    def test_sorted_window(self, store, seed_foos):
        pageable = PageRequest.of(1, 2, Sort.by("quantity", ascending=False))
        assert [f.name for f in search(store, pageable=pageable)] == ["gamma", "beta"]

    def test_unknown_sort_property(self, store, seed_foos):
        pageable = PageRequest.of(0, 2, Sort.by("colour"))
        with pytest.raises(InvalidQueryError):
            search(store, pageable=pageable)

    def test_find_page_counts_total(self, store, seed_foos):
        page = store.find_page(PageRequest.of(0, 2, Sort.by("name")))

        assert [f.name for f in page] == ["alpha", "beta"]
        assert page.total_elements == 5
        assert page.total_pages == 3

    def test_count(self, store, seed_foos):
        assert store.count() == 5
        assert store.count(create_search_base_options("a", parse_query("quantity=lt=3"))) == 2


class TestSpecificationStore:
    def test_specification_applies_to_chosen_operation(self, db_session, seed_foos):
        store = SpecificationSqlAlchemyStore(
            db_session,
            Foo,
            specifications={CrudOperation.PAGE: ExpressionSpecification(Foo.active.is_(True))},
        )

        assert len(search(store)) == 4
        assert store.count() == 5
        assert store.count_page() == 4

    def test_page_total_uses_page_specification(self, db_session, seed_foos):
        store = SpecificationSqlAlchemyStore(
            db_session,
            Foo,
            specifications={CrudOperation.PAGE: ExpressionSpecification(Foo.active.is_(True))},
        )
        service = SqlAlchemyReadService(db_session, Foo, store=store)

        plain = service.page(None, PageRequest.of(0, 2))
        filtered = service.page(None, PageRequest.of(0, 2), parse_query("quantity=ge=1"))

        for page in (plain, filtered):
            assert page.total_elements == 4
            assert page.total_pages == 2
        assert service.count() == 5

    def test_default_specification(self, db_session, seed_foos):
        store = SpecificationSqlAlchemyStore(
            db_session,
            Foo,
            default=ExpressionSpecification(Foo.active.is_(True)),
        )
        inactive = seed_foos[4]

        assert store.find_by_id(inactive.id) is None
        assert store.exists(inactive.id) is False
        assert store.count() == 4

    def test_combined_specifications(self, db_session, seed_foos):
        active = ExpressionSpecification(Foo.active.is_(True))
        first = ExpressionSpecification(Foo.quantity == 1)
        store = SpecificationSqlAlchemyStore(
            db_session,
            Foo,
            specifications={CrudOperation.PAGE: ~active | first},
        )

        assert names(search(store)) == ["alpha", "epsilon"]

    def test_filter_still_applies(self, db_session, seed_foos):
        store = SpecificationSqlAlchemyStore(
            db_session,
            Foo,
            default=ExpressionSpecification(Foo.active.is_(True)),
        )
        assert names(search(store, query="quantity=ge=4")) == ["delta"]


class TestSqlAlchemyCrudService:
    def test_create_commits(self, db_session, foo_service):
        foo = foo_service.create({"name": "zeta", "quantity": 6})
        db_session.rollback()

        assert foo.id is not None
        assert db_session.get(Foo, foo.id).name == "zeta"

    def test_failed_hook_rolls_back(self, db_session, seed_foos):
        def reject(dto, entity):
            raise RuntimeError("rejected")

        service = SqlAlchemyWriteService(
            db_session,
            Foo,
            FooInput,
            hooks=CallbackHooks(on_after_create=reject),
        )

        with pytest.raises(RuntimeError):
            service.create({"name": "zeta"})

        assert SqlAlchemyStore(db_session, Foo).count() == 5

    def test_update_persists(self, db_session, foo_service, seed_foos):
        beta = seed_foos[1]

        foo_service.update(beta.id, FooInput(name="beta2", quantity=20))
        db_session.rollback()

        assert db_session.get(Foo, beta.id).quantity == 20

    def test_delete(self, foo_service, seed_foos):
        alpha_id = seed_foos[0].id

        foo_service.delete(alpha_id)

        assert not foo_service.exists(alpha_id)
        with pytest.raises(NotFoundEntityError):
            foo_service.find(alpha_id)

    def test_page_and_count(self, foo_service, seed_foos):
        query = parse_query("owner.name==Ann")

        page = foo_service.page("gam", PageRequest.of(0, 10), query)

        assert [f.name for f in page] == ["gamma"]
        assert foo_service.count(None, query) == 2
        assert foo_service.count("  ") == 5

    def test_read_service_with_search_fields(self, db_session, seed_foos):
        service = SqlAlchemyReadService(db_session, Foo, search_fields=["description"])

        assert service.count("alpha") == 0
        assert service.count("letter") == 1
