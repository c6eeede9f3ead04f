'''
Shape stored documents the way the website expects them.
Used by the REST responses and by the change relay; both must produce the same payload for the same document.
'''

from jbmmsi.dal.models.events import EntityKind

# Fields holding the name of an uploaded image.
IMAGE_FIELDS = {
    EntityKind.ANNOUNCEMENT: "image",
    EntityKind.SCHOOL: "imageUrl",
}


def format_image_url(base_url, value):
    """
    Uploaded images are stored by name; turn that into a URL under /uploads.
    Values that are already absolute URLs are left alone.
    """
    if not value or value.startswith("http://") or value.startswith("https://"):
        return value
    return "%s/uploads/%s" % ((base_url or "").rstrip("/"), value)


def format_record(kind, doc, base_url=""):
    if doc is None:
        return None
    formatted = dict(doc)
    image_field = IMAGE_FIELDS.get(kind)
    if image_field and image_field in formatted:
        formatted[image_field] = format_image_url(base_url, formatted[image_field])
    return formatted


def school_gallery_entry(doc, base_url=""):
    """
    The gallery only needs these attributes.
    """
    return {
        "_id": doc["_id"],
        "name": doc["name"],
        "imageUrl": format_image_url(base_url, doc.get("imageUrl")),
        "createdAt": doc.get("createdAt"),
        "updatedAt": doc.get("updatedAt"),
    }


class RecordFormatter(object):
    """
    Formats payloads for the change relay, which has no request of its own.
    Uses BASE_URL when configured; otherwise the host of the most recent API request,
    so that events carry the same absolute image URLs as the REST responses.
    """
    def __init__(self, base_url=None):
        self.configured_base_url = base_url
        self.last_request_base_url = None

    def remember_base_url(self, url):
        if not self.configured_base_url:
            self.last_request_base_url = url

    @property
    def base_url(self):
        return self.configured_base_url or self.last_request_base_url or ""

    def __call__(self, kind, doc):
        return format_record(kind, doc, self.base_url)
