"""
Tests for the MongoDB store and services, backed by mongomock.
"""

import re
from datetime import date, datetime
from unittest.mock import MagicMock

import bson
import pytest
from fastapi import Depends, FastAPI
from pymongo.database import Database

from data_crud.repositories.mongo import MongoQueryBuilder, MongoStore, wildcard_to_regex
from data_crud.services.rsql import parse_query
from data_crud.services.search import PageRequest, Sort, create_search_options
from data_crud.services.standard import MongoCrudService, MongoReadService
from data_crud.services.transactions import MongoTransactionTemplate
from shared.infrastructure.mongo import get_mongo_db
from shared.utils.exceptions import InvalidQueryError, NotFoundEntityError, ValidationError
from tests.models import Bar, BarInput, Event


def names(entities):
    return sorted(e.name for e in entities)


@pytest.fixture
def store(bar_collection):
    return MongoStore(bar_collection, Bar)


@pytest.fixture
def seed_bars(store):
    return [
        store.save(Bar(name="anchor", size=3, tags=["red"])),
        store.save(Bar(name="buoy", size=5, tags=["blue"])),
        store.save(Bar(name="compass", size=1)),
        store.save(Bar(name="dinghy", size=8, tags=["red", "blue"])),
    ]


def search(store, text=None, query=None, pageable=None):
    pageable = pageable or PageRequest.unpaged()
    return store.search(create_search_options(text, pageable, parse_query(query)))


class TestMongoQueryBuilder:
    @pytest.fixture
    def builder(self):
        return MongoQueryBuilder(Bar)

    def test_logical_nodes(self, builder):
        document = parse_query("size=ge=2;(name!=x,tags=isnull=true)").accept(builder)

        assert document == {
            "$and": [
                {"size": {"$gte": 2}},
                {"$or": [{"name": {"$ne": "x"}}, {"tags": None}]},
            ]
        }

    def test_id_selector_maps_to_underscore_id(self, builder):
        assert parse_query("id==abc").accept(builder) == {"_id": "abc"}

    def test_wildcards(self, builder):
        assert parse_query("name==an*").accept(builder) == {"name": {"$regex": "^an.*$"}}
        assert parse_query("name!=an*").accept(builder) == {
            "name": {"$not": re.compile("^an.*$")}
        }
        assert parse_query("name=ilike=a.b").accept(builder) == {
            "name": {"$regex": "a\\.b", "$options": "i"}
        }

    def test_in_lists_are_coerced(self, builder):
        assert parse_query("size=out=(1,2)").accept(builder) == {"size": {"$nin": [1, 2]}}

    def test_unknown_selector(self, builder):
        with pytest.raises(InvalidQueryError):
            parse_query("colour==red").accept(builder)

    def test_unconvertible_argument(self, builder):
        with pytest.raises(InvalidQueryError) as exc_info:
            parse_query("size=gt=big").accept(builder)
        assert exc_info.value.reason == "cannot convert 'big' to int"

    def test_wildcard_to_regex_escapes(self):
        assert wildcard_to_regex("a+b*") == "^a\\+b.*$"


class TestMongoStore:
    def test_save_assigns_string_id(self, store, bar_collection):
        saved = store.save(Bar(name="eel"))

        assert isinstance(saved.id, str)
        assert len(saved.id) == 24
        assert bar_collection.find_one({"_id": saved.id})["name"] == "eel"

    def test_save_with_id_replaces(self, store, seed_bars):
        anchor = seed_bars[0]

        store.save(Bar(id=anchor.id, name="anchor", size=30))

        assert store.count() == 4
        assert store.find_by_id(anchor.id).size == 30

    def test_save_rejects_invalid_entity(self, store):
        with pytest.raises(ValidationError) as exc_info:
            store.save(Bar.model_construct(size=1))
        assert exc_info.value.status_code == 422

    def test_lookups(self, store, seed_bars):
        anchor, buoy = seed_bars[0], seed_bars[1]

        assert store.find_by_id(anchor.id) == anchor
        assert store.find_by_id("missing") is None
        assert names(store.find_all_by_ids([anchor.id, "missing", buoy.id])) == ["anchor", "buoy"]
        assert store.find_all_by_ids([]) == []
        assert store.exists(buoy.id) is True
        assert store.exists("missing") is False

    def test_text_search(self, store, seed_bars):
        assert names(search(store, "NCH")) == ["anchor"]
        assert search(store, "o.p") == []

    @pytest.mark.parametrize(
        "query,expected",
        [
            ("size=gt=3", ["buoy", "dinghy"]),
            ("size=in=(1,3)", ["anchor", "compass"]),
            ("name==*y", ["buoy", "dinghy"]),
            ("name=ilike=ANC", ["anchor"]),
            ("tags==red", ["anchor", "dinghy"]),
            ("size<3,size>6", ["compass", "dinghy"]),
        ],
    )
    def test_query(self, store, seed_bars, query, expected):
        assert names(search(store, query=query)) == expected

    def test_search_and_query_combine(self, store, seed_bars):
        assert names(search(store, "a", "size=lt=5")) == ["anchor", "compass"]

    def test_sorted_window(self, store, seed_bars):
        pageable = PageRequest.of(0, 2, Sort.by("size", ascending=False))
        assert [b.name for b in search(store, pageable=pageable)] == ["dinghy", "buoy"]

    def test_unknown_sort_property(self, store, seed_bars):
        with pytest.raises(InvalidQueryError):
            search(store, pageable=PageRequest.of(0, 2, Sort.by("colour")))

    def test_find_page(self, store, seed_bars):
        page = store.find_page(PageRequest.of(1, 3, Sort.by("name")))

        assert [b.name for b in page] == ["dinghy"]
        assert page.total_elements == 4

    def test_delete(self, store, seed_bars):
        store.delete(seed_bars[0])
        assert store.count() == 3

    def test_writes_join_transaction_session(self):
        collection = MagicMock()
        collection.find_one.return_value = None
        template = MongoTransactionTemplate(MagicMock())
        store = MongoStore(collection, Bar, transactions=template)

        store.find_by_id("outside")
        template.execute(lambda status: store.find_by_id("inside"))

        outside, inside = collection.find_one.call_args_list
        assert "session" not in outside.kwargs
        assert inside.kwargs["session"] is not None


class TestMongoServices:
    @pytest.fixture
    def service(self, bar_collection):
        return MongoCrudService(bar_collection, Bar, BarInput)

    def test_create_update_delete(self, service):
        bar = service.create({"name": "eel", "size": 2, "tags": ["green"]})

        assert service.find(bar.id).tags == ["green"]

        updated = service.update(bar.id, BarInput(name="eel2", size=4))
        assert updated.name == "eel2"
        assert service.find(bar.id).size == 4

        service.delete(bar.id)
        assert not service.exists(bar.id)

    def test_missing_entity(self, service):
        with pytest.raises(NotFoundEntityError):
            service.find("missing")
        with pytest.raises(NotFoundEntityError):
            service.delete("missing")

    def test_invalid_dto(self, service):
        with pytest.raises(ValidationError):
            service.create({"name": ""})

    def test_page_and_count(self, service, bar_collection, seed_bars):
        page = service.page(None, PageRequest.of(0, 3, Sort.by("name")))

        assert [b.name for b in page] == ["anchor", "buoy", "compass"]
        assert page.total_elements == 4
        assert service.count("o") == 3
        assert service.count(None, parse_query("tags==blue")) == 2

    def test_read_service_search_fields(self, bar_collection, seed_bars):
        service = MongoReadService(bar_collection, Bar, search_fields=["name"])
        assert service.count("ANCH") == 1


class TestDateFields:
    @pytest.fixture
    def event_store(self, mongo_client):
        return MongoStore(mongo_client["data_crud_test"]["events"], Event)

    def test_dates_stored_as_midnight_datetimes(self, event_store):
        document = event_store.to_document(Event(id="x", name="launch", day=date(2024, 1, 2)))

        assert document == {"_id": "x", "name": "launch", "day": datetime(2024, 1, 2), "due": None}
        assert bson.encode(document)

    def test_save_and_find_keep_dates(self, event_store):
        saved = event_store.save(Event(name="launch", day=date(2024, 1, 2), due=date(2024, 2, 1)))

        found = event_store.find_by_id(saved.id)

        assert found.day == date(2024, 1, 2)
        assert type(found.day) is date
        assert found.due == date(2024, 2, 1)

    def test_date_filter_matches_stored_dates(self, event_store):
        event_store.save(Event(name="first", day=date(2024, 1, 2)))
        event_store.save(Event(name="second", day=date(2024, 3, 5)))

        assert names(search(event_store, query="day=ge=2024-02-01")) == ["second"]
        assert names(search(event_store, query="day==2024-01-02")) == ["first"]


class TestDatabaseDependency:
    def test_takes_no_request_parameters(self):
        app = FastAPI()

        @app.get("/database")
        def database_name(db: Database = Depends(get_mongo_db)):
            return db.name

        operation = app.openapi()["paths"]["/database"]["get"]
        assert "parameters" not in operation
