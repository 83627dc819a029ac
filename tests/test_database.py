"""Stores on the in-memory backend, and driver failures surfacing as StoreError."""

from unittest.mock import MagicMock

import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from database import AccountStore, BlogStore, BookingStore, Stores
from errors import StoreError, ValidationError, store_errors
from schemas import Account, Booking


class TestMemoryStores:

    def test_backend_name(self):
        assert Stores.build(None).backend == "memory"

    def test_account_email_unique(self):
        accounts = AccountStore()
        accounts.create(Account(name="A", email="a@x.com", password="p"))
        with pytest.raises(ValidationError, match="User already exists"):
            accounts.create(Account(name="B", email="a@x.com", password="q"))

    def test_list_public_hides_password(self):
        accounts = AccountStore()
        accounts.create(Account(name="A", email="a@x.com", password="p"))
        assert "password" not in accounts.list_public()[0]
        # the stored record is untouched
        assert accounts.find_by_email("a@x.com")["password"] == "p"

    def test_booking_delete(self):
        bookings = BookingStore()
        saved = bookings.create(
            Booking(name="A", email="a@x.com", people=1, city="Rome", price="10")
        )
        assert bookings.delete(saved["_id"]) is True
        assert bookings.delete(saved["_id"]) is False
        assert bookings.list_all() == []

    def test_invalid_id_matches_nothing(self):
        blogs = BlogStore()
        assert blogs.get("xyz") is None
        assert blogs.delete("xyz") is False


class TestMongoBackedAccounts:

    def test_duplicate_key_reported_as_existing_user(self):
        db = MagicMock()
        collection = db.__getitem__.return_value
        collection.find_one.return_value = None
        collection.insert_one.side_effect = DuplicateKeyError("E11000")

        with pytest.raises(ValidationError, match="User already exists"):
            AccountStore(db).create(Account(name="A", email="a@x.com", password="p"))

    def test_list_public_projects_out_password(self):
        db = MagicMock()
        collection = db.__getitem__.return_value
        collection.find.return_value = [{"_id": "abc", "name": "A", "email": "a@x.com"}]

        assert AccountStore(db).list_public() == [{"_id": "abc", "name": "A", "email": "a@x.com"}]
        collection.find.assert_called_once_with({}, {"password": 0})


def test_store_errors_wraps_driver_failures():
    with pytest.raises(StoreError) as exc_info:
        with store_errors("Failed to fetch blogs"):
            raise ServerSelectionTimeoutError("no servers")
    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "Failed to fetch blogs"


@pytest.mark.asyncio
async def test_store_failure_is_500_with_fixed_message(client, stores, monkeypatch):
    def boom():
        raise ServerSelectionTimeoutError("mongo unreachable at 10.0.0.1")

    monkeypatch.setattr(stores.blogs, "list_recent", boom)
    resp = await client.get("/api/blogs")
    assert resp.status_code == 500
    assert resp.json() == {"message": "Failed to fetch blogs"}
