'''
Various small utilties.
'''
import json
import math
import hashlib
import datetime

import pytz
from bson import ObjectId


class JSONEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, ObjectId):
            return str(o)
        elif isinstance(o, float) and not math.isfinite(o):
            return str(o)
        elif isinstance(o, datetime.datetime):
            # Use var d = new Date(str) in JS to deserialize
            if o.tzinfo is None:
                o = o.replace(tzinfo=pytz.UTC)
            return o.isoformat()
        return json.JSONEncoder.default(self, o)


def utcnow():
    return datetime.datetime.now(pytz.UTC)


def to_wire(obj):
    """
    Socket.IO and Kafka want plain JSON types; round trip through the encoder to get rid of ObjectId's and datetimes.
    """
    return json.loads(JSONEncoder().encode(obj))


def content_hash(doc):
    """
    Stable hash of a document; keys are sorted so that field order in the store does not matter.
    """
    return hashlib.sha1(JSONEncoder(sort_keys=True).encode(doc).encode("utf-8")).hexdigest()
