"""
Document store access.

One MongoDB database holds the three collections (users, bookings, blogs).
Without a DATABASE_URL the stores keep documents in process memory, which is
enough for local development and the test-suite.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import Settings
from errors import ValidationError
from schemas import Account, BlogPost, Booking

logger = logging.getLogger(__name__)


def connect(settings: Settings) -> Optional[Database]:
    if not settings.database_url:
        logger.warning("DATABASE_URL is not set; documents are kept in memory")
        return None
    client = MongoClient(settings.database_url, tz_aware=True)
    logger.info("Using MongoDB database '%s'", settings.database_name)
    return client[settings.database_name]


def serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(doc)
    if "_id" in out:
        out["_id"] = str(out["_id"])
    return out


def _object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


class DocumentStore:
    """One collection, backed by MongoDB when `db` is given, else by a list."""

    collection = ""

    def __init__(self, db: Optional[Database] = None):
        self.db = db
        self._memory: List[Dict[str, Any]] = []

    def insert(self, data) -> Dict[str, Any]:
        doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
        if self.db is not None:
            result = self.db[self.collection].insert_one(doc)
            doc["_id"] = result.inserted_id
        else:
            doc["_id"] = ObjectId()
            self._memory.append(dict(doc))
        return serialize(doc)

    def find(
        self,
        query: Optional[Dict[str, Any]] = None,
        exclude: Iterable[str] = (),
        sort: Optional[Tuple[str, int]] = None,
    ) -> List[Dict[str, Any]]:
        query = query or {}
        exclude = tuple(exclude)
        if self.db is not None:
            projection = {f: 0 for f in exclude} or None
            cursor = self.db[self.collection].find(query, projection)
            if sort:
                cursor = cursor.sort(*sort)
            items = list(cursor)
        else:
            items = [dict(d) for d in self._memory if _matches(d, query)]
            for it in items:
                for f in exclude:
                    it.pop(f, None)
            if sort:
                key, direction = sort
                items.sort(key=lambda d: d[key], reverse=direction == DESCENDING)
        return [serialize(it) for it in items]

    def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self.db is not None:
            doc = self.db[self.collection].find_one(query)
            return serialize(doc) if doc else None
        for d in self._memory:
            if _matches(d, query):
                return serialize(d)
        return None

    def find_by_id(self, doc_id: str) -> Optional[Dict[str, Any]]:
        oid = _object_id(doc_id)
        if oid is None:
            return None
        return self.find_one({"_id": oid})

    def delete_by_id(self, doc_id: str) -> bool:
        oid = _object_id(doc_id)
        if oid is None:
            return False
        if self.db is not None:
            res = self.db[self.collection].delete_one({"_id": oid})
            return res.deleted_count > 0
        before = len(self._memory)
        self._memory = [d for d in self._memory if d["_id"] != oid]
        return len(self._memory) < before


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    return all(doc.get(k) == v for k, v in query.items())


class AccountStore(DocumentStore):
    collection = "users"

    def ensure_indexes(self) -> None:
        if self.db is not None:
            self.db[self.collection].create_index("email", unique=True)

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self.find_one({"email": email})

    def create(self, account: Account) -> Dict[str, Any]:
        # Check-then-insert is not atomic; the unique index closes the gap on MongoDB.
        if self.find_by_email(account.email) is not None:
            raise ValidationError("User already exists")
        try:
            return self.insert(account)
        except DuplicateKeyError:
            raise ValidationError("User already exists")

    def list_public(self) -> List[Dict[str, Any]]:
        return self.find(exclude=("password",))


class BookingStore(DocumentStore):
    collection = "bookings"

    def create(self, booking: Booking) -> Dict[str, Any]:
        return self.insert(booking)

    def list_all(self) -> List[Dict[str, Any]]:
        return self.find()

    def delete(self, booking_id: str) -> bool:
        return self.delete_by_id(booking_id)


class BlogStore(DocumentStore):
    collection = "blogs"

    def create(self, post: BlogPost) -> Dict[str, Any]:
        return self.insert(post)

    def list_recent(self) -> List[Dict[str, Any]]:
        return self.find(sort=("date", DESCENDING))

    def get(self, blog_id: str) -> Optional[Dict[str, Any]]:
        return self.find_by_id(blog_id)

    def delete(self, blog_id: str) -> bool:
        return self.delete_by_id(blog_id)


@dataclass
class Stores:
    accounts: AccountStore
    bookings: BookingStore
    blogs: BlogStore

    @classmethod
    def build(cls, db: Optional[Database]) -> "Stores":
        return cls(
            accounts=AccountStore(db),
            bookings=BookingStore(db),
            blogs=BlogStore(db),
        )

    @property
    def backend(self) -> str:
        return "mongo" if self.accounts.db is not None else "memory"
