'''
The model level business logic goes here.
Most of the code here gets a collection from the site database, executes a query and returns the documents.
Formatting for the website happens in the blueprints; the change relay only needs find_by_id.
'''

import logging
import math

from pydantic import ConfigDict, TypeAdapter, ValidationError
from pymongo import DESCENDING, ReturnDocument

from jbmmsi.dal.models.common import PyObjectId
from jbmmsi.dal.models.events import EntityKind
from jbmmsi.dal.utils import utcnow

logger = logging.getLogger(__name__)

_object_id = TypeAdapter(PyObjectId, config=ConfigDict(arbitrary_types_allowed=True))

# Newest first; inquiries predate the createdAt convention.
SORT_FIELDS = {
    EntityKind.INQUIRY: "timestamp",
    EntityKind.ANNOUNCEMENT: "createdAt",
    EntityKind.SCHOOL: "createdAt",
    EntityKind.REVIEW: "createdAt",
}


class RecordStoreException(Exception):
    pass


class InvalidRecordId(RecordStoreException):
    def __init__(self, record_id):
        super().__init__("Invalid ID format %s" % record_id)
        self.record_id = record_id


def parse_record_id(record_id):
    try:
        return _object_id.validate_python(record_id)
    except ValidationError as exc:
        raise InvalidRecordId(record_id) from exc


def total_pages(total, limit):
    return math.ceil(total / limit) if limit else 0


class RecordStore(object):
    """
    One collection per entity kind in the site database.
    """
    def __init__(self, database):
        self.database = database

    def collection(self, kind):
        return self.database[kind.collection]

    def find_by_id(self, kind, record_id):
        """
        Return the current document or None if it does not exist (anymore).
        """
        return self.collection(kind).find_one({"_id": parse_record_id(record_id)})

    def list_records(self, kind, query, page=1, limit=10):
        """
        One page of records sorted newest first, along with the total number of matching records.
        """
        page = max(page, 1)
        limit = max(limit, 1)
        records = list(self.collection(kind).find(query).sort([(SORT_FIELDS[kind], DESCENDING)]).skip((page - 1) * limit).limit(limit))
        return records, self.collection(kind).count_documents(query)

    def find_records(self, kind, query, limit=0):
        cursor = self.collection(kind).find(query).sort([(SORT_FIELDS[kind], DESCENDING)])
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)

    def count(self, kind, query=None):
        return self.collection(kind).count_documents(query or {})

    def insert(self, kind, document):
        """
        Insert the document and return it as stored.
        """
        if kind != EntityKind.INQUIRY:
            now = utcnow()
            document.setdefault("createdAt", now)
            document.setdefault("updatedAt", now)
        ins_id = self.collection(kind).insert_one(document).inserted_id
        logger.debug("Inserted %s %s", kind.value, ins_id)
        return self.collection(kind).find_one({"_id": ins_id})

    def update(self, kind, record_id, changes):
        """
        Apply the changes and return the document after the update; None if there is no such record.
        updatedAt always moves so that two updates never leave identical documents behind.
        """
        changes = dict(changes)
        changes["updatedAt"] = utcnow()
        return self.collection(kind).find_one_and_update({"_id": parse_record_id(record_id)}, {"$set": changes}, return_document=ReturnDocument.AFTER)

    def delete(self, kind, record_id):
        """
        Delete the record; return the deleted document or None if there was nothing to delete.
        """
        return self.collection(kind).find_one_and_delete({"_id": parse_record_id(record_id)})

    def average_rating(self):
        """
        Average rating of the approved reviews, rounded to one decimal; 0 if there are none.
        """
        result = list(self.collection(EntityKind.REVIEW).aggregate([
            { "$match": { "isApproved": True } },
            { "$group": { "_id": None, "average": { "$avg": "$rating" } } }
        ]))
        if not result or result[0]["average"] is None:
            return 0
        return math.floor(result[0]["average"] * 10 + 0.5) / 10

    def ping(self):
        self.database.command("ping")
        return True
