'''
Code for the business logic.
Here's where you do the actual business logic using the record store from the dal.
The public methods here are Flask blueprint endpoints.
We get the arguments for the business logic from Flask; make various calls to the store and then send JSON responses.
Every successful write is handed to the change relay, which takes care of the Websocket layer (and Kafka).
'''

import logging

from flask import Blueprint, Response, request, current_app
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from jbmmsi.dal.formatting import format_record, school_gallery_entry, IMAGE_FIELDS, RecordFormatter
from jbmmsi.dal.imagestores import UploadRejected, store_image_upload
from jbmmsi.dal.models import (
    EntityKind,
    Operation,
    RecordValidationError,
    validate_record,
    InquiryCreate,
    InquiryStatusUpdate,
    AnnouncementCreate,
    AnnouncementUpdate,
    SchoolCreate,
    SchoolUpdate,
    ReviewCreate,
    ReviewUpdate,
)
from jbmmsi.dal.records import InvalidRecordId, parse_record_id, total_pages
from jbmmsi.dal.utils import JSONEncoder

api_blueprint = Blueprint('school_site_api', __name__, url_prefix="/api")

logger = logging.getLogger(__name__)


def site():
    return current_app.extensions["jbmmsi"]


def sendResponse(status, success, message, data=None):
    """
    Every API response has the same envelope; data is left out if there is none.
    """
    response = {"success": success, "message": message}
    if data is not None:
        response["data"] = data
    return Response(JSONEncoder().encode(response), status=status, mimetype="application/json")


def base_url():
    return current_app.config.get("BASE_URL") or request.host_url.rstrip("/")


def incoming_data():
    """
    The website posts JSON; forms with image uploads come in as multipart.
    """
    info = request.get_json(silent=True)
    if info is None:
        info = request.form.to_dict()
    if not isinstance(info, dict):
        raise RecordValidationError(["Please send the record as a JSON object"])
    return info


def page_args():
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 10, type=int)
    return max(page, 1), max(limit, 1)


def bool_arg(name):
    value = request.args.get(name, None)
    return None if value is None else value == "true"


def relay_change(kind, operation, record):
    """
    Hand the write to the relay. The event carries the record exactly as this response formats it.
    """
    if operation == Operation.DELETED:
        site().relay.notify(kind, operation, record["_id"])
    else:
        site().relay.notify(kind, operation, record["_id"], document=record, payload=format_record(kind, record, base_url()))


@api_blueprint.before_request
def remember_request_host():
    # Change stream events have no request of their own; they use the host the API was last reached on.
    formatter = site().relay.formatter
    if isinstance(formatter, RecordFormatter):
        formatter.remember_base_url(request.host_url.rstrip("/"))


@api_blueprint.errorhandler(RecordValidationError)
def validation_error(e):
    logger.error("Validation error: %s", e)
    return sendResponse(400, False, "Validation error: " + ", ".join(e.messages))


@api_blueprint.errorhandler(InvalidRecordId)
def invalid_id(e):
    logger.error("Invalid ID format %s", e.record_id)
    return sendResponse(400, False, "Invalid ID format")


@api_blueprint.errorhandler(UploadRejected)
def upload_rejected(e):
    logger.error("Rejected upload: %s", e)
    return sendResponse(400, False, str(e))


@api_blueprint.errorhandler(RequestEntityTooLarge)
def upload_too_large(e):
    max_mb = current_app.config["MAX_UPLOAD_SIZE"] // (1024 * 1024)
    return sendResponse(400, False, "File too large. Maximum size is %sMB." % max_mb)


@api_blueprint.errorhandler(Exception)
def unhandled_error(e):
    if isinstance(e, HTTPException):
        return sendResponse(e.code, False, e.description)
    if isinstance(e, PyMongoError):
        logger.exception("Database error handling %s %s", request.method, request.path)
    else:
        logger.exception("Unhandled error handling %s %s", request.method, request.path)
    return sendResponse(500, False, "Internal server error")


# Generic CRUD used by the announcements, schools and reviews endpoints.

def _formatted(kind, records):
    url = base_url()
    return [format_record(kind, x, url) for x in records]


def _get_record(kind, record_id):
    record = site().store.find_by_id(kind, record_id)
    if not record:
        return sendResponse(404, False, "%s not found" % kind.value)
    return sendResponse(200, True, "%s fetched successfully" % kind.value, format_record(kind, record, base_url()))


def _incoming_with_image(kind):
    """
    Get the incoming record; if an image was uploaded, store it and point the image field at it.
    Returns the data and the name of the stored upload (or None).
    """
    info = incoming_data()
    upload = request.files.get("image", None)
    if not (upload and upload.filename):
        return info, None
    stored_name = store_image_upload(site().images, upload)
    info[IMAGE_FIELDS[kind]] = stored_name
    return info, stored_name


def _remove_upload(value):
    if value and not value.startswith("http://") and not value.startswith("https://"):
        site().images.delete_file(value)


def _create_record(kind, model):
    if kind in IMAGE_FIELDS:
        info, stored_name = _incoming_with_image(kind)
    else:
        info, stored_name = incoming_data(), None
    try:
        validated = validate_record(model, info)
    except RecordValidationError:
        if stored_name:
            _remove_upload(stored_name)
        raise
    record = site().store.insert(kind, validated.to_document())
    logger.info("Created %s %s", kind.value, record["_id"])
    relay_change(kind, Operation.CREATED, record)
    return sendResponse(201, True, "%s created successfully" % kind.value, format_record(kind, record, base_url()))


def _update_record(kind, model, record_id):
    parse_record_id(record_id)
    existing = site().store.find_by_id(kind, record_id)
    if not existing:
        return sendResponse(404, False, "%s not found" % kind.value)
    if kind in IMAGE_FIELDS:
        info, stored_name = _incoming_with_image(kind)
    else:
        info, stored_name = incoming_data(), None
    try:
        changes = validate_record(model, info).to_document(exclude_unset=True)
    except RecordValidationError:
        if stored_name:
            _remove_upload(stored_name)
        raise
    record = site().store.update(kind, record_id, changes)
    if not record:
        # Deleted between the lookup and the update.
        if stored_name:
            _remove_upload(stored_name)
        return sendResponse(404, False, "%s not found" % kind.value)
    if stored_name:
        _remove_upload(existing.get(IMAGE_FIELDS[kind]))
    logger.info("Updated %s %s", kind.value, record_id)
    relay_change(kind, Operation.UPDATED, record)
    return sendResponse(200, True, "%s updated successfully" % kind.value, format_record(kind, record, base_url()))


def _delete_record(kind, record_id):
    record = site().store.delete(kind, record_id)
    if not record:
        return sendResponse(404, False, "%s not found" % kind.value)
    if kind in IMAGE_FIELDS:
        _remove_upload(record.get(IMAGE_FIELDS[kind]))
    logger.info("Deleted %s %s", kind.value, record_id)
    relay_change(kind, Operation.DELETED, record)
    return sendResponse(200, True, "%s deleted successfully" % kind.value, {"id": record["_id"]})


# ========== INQUIRIES ==========

@api_blueprint.route("/inquiries", methods=["GET"])
def svc_get_inquiries():
    """
    All inquiries for the admin dashboard, newest first.
    Query parameters: page, limit and optionally status (new/contacted/resolved).
    """
    status = request.args.get("status", None)
    query = {"status": status} if status else {}
    page, limit = page_args()
    inquiries, total = site().store.list_records(EntityKind.INQUIRY, query, page, limit)
    return sendResponse(200, True, "Inquiries fetched successfully", {
        "inquiries": inquiries,
        "totalPages": total_pages(total, limit),
        "currentPage": page,
        "total": total
    })


@api_blueprint.route("/inquiries", methods=["POST"])
def svc_create_inquiry():
    info = incoming_data()
    logger.info("Received inquiry from %s", info.get("email", None))
    inquiry = validate_record(InquiryCreate, info)
    record = site().store.insert(EntityKind.INQUIRY, inquiry.to_document())
    logger.info("Inquiry %s saved successfully", record["_id"])
    relay_change(EntityKind.INQUIRY, Operation.CREATED, record)
    return sendResponse(201, True, "Inquiry submitted successfully! We will contact you soon.", {"id": record["_id"]})


@api_blueprint.route("/inquiries/<inquiry_id>/status", methods=["PATCH"])
def svc_update_inquiry_status(inquiry_id):
    parse_record_id(inquiry_id)
    status_update = validate_record(InquiryStatusUpdate, incoming_data())
    record = site().store.update(EntityKind.INQUIRY, inquiry_id, {"status": status_update.status})
    if not record:
        return sendResponse(404, False, "Inquiry not found")
    relay_change(EntityKind.INQUIRY, Operation.UPDATED, record)
    return sendResponse(200, True, "Inquiry status updated successfully", record)


@api_blueprint.route("/inquiries/<inquiry_id>", methods=["DELETE"])
def svc_delete_inquiry(inquiry_id):
    return _delete_record(EntityKind.INQUIRY, inquiry_id)


# ========== ANNOUNCEMENTS ==========

@api_blueprint.route("/announcements", methods=["GET"])
def svc_get_announcements():
    """
    Announcements with pagination; `active=true|false` filters on isActive.
    """
    active = bool_arg("active")
    query = {"isActive": active} if active is not None else {}
    page, limit = page_args()
    announcements, total = site().store.list_records(EntityKind.ANNOUNCEMENT, query, page, limit)
    return sendResponse(200, True, "Announcements fetched successfully", {
        "announcements": _formatted(EntityKind.ANNOUNCEMENT, announcements),
        "totalPages": total_pages(total, limit),
        "currentPage": page,
        "total": total
    })


@api_blueprint.route("/announcements/active", methods=["GET"])
def svc_get_active_announcements():
    announcements = site().store.find_records(EntityKind.ANNOUNCEMENT, {"isActive": True}, limit=6)
    return sendResponse(200, True, "Active announcements fetched successfully", _formatted(EntityKind.ANNOUNCEMENT, announcements))


@api_blueprint.route("/announcements/<announcement_id>", methods=["GET"])
def svc_get_announcement(announcement_id):
    return _get_record(EntityKind.ANNOUNCEMENT, announcement_id)


@api_blueprint.route("/announcements", methods=["POST"])
def svc_create_announcement():
    """
    Multipart with the image in the `image` field; or JSON with `image` already pointing to an image.
    """
    return _create_record(EntityKind.ANNOUNCEMENT, AnnouncementCreate)


@api_blueprint.route("/announcements/<announcement_id>", methods=["PUT"])
def svc_update_announcement(announcement_id):
    return _update_record(EntityKind.ANNOUNCEMENT, AnnouncementUpdate, announcement_id)


@api_blueprint.route("/announcements/<announcement_id>", methods=["DELETE"])
def svc_delete_announcement(announcement_id):
    return _delete_record(EntityKind.ANNOUNCEMENT, announcement_id)


# ========== SCHOOLS ==========

@api_blueprint.route("/schools", methods=["GET"])
def svc_get_schools():
    schools = site().store.find_records(EntityKind.SCHOOL, {})
    return sendResponse(200, True, "Schools fetched successfully", _formatted(EntityKind.SCHOOL, schools))


@api_blueprint.route("/schools/active", methods=["GET"])
def svc_get_active_schools():
    """
    Just what the gallery on the home page needs.
    """
    url = base_url()
    schools = site().store.find_records(EntityKind.SCHOOL, {"isActive": True})
    return sendResponse(200, True, "Active schools fetched successfully", [school_gallery_entry(x, url) for x in schools])


@api_blueprint.route("/schools/<school_id>", methods=["GET"])
def svc_get_school(school_id):
    return _get_record(EntityKind.SCHOOL, school_id)


@api_blueprint.route("/schools", methods=["POST"])
def svc_create_school():
    return _create_record(EntityKind.SCHOOL, SchoolCreate)


@api_blueprint.route("/schools/<school_id>", methods=["PUT"])
def svc_update_school(school_id):
    return _update_record(EntityKind.SCHOOL, SchoolUpdate, school_id)


@api_blueprint.route("/schools/<school_id>", methods=["DELETE"])
def svc_delete_school(school_id):
    return _delete_record(EntityKind.SCHOOL, school_id)


# ========== REVIEWS ==========

@api_blueprint.route("/reviews", methods=["GET"])
def svc_get_reviews():
    reviews = site().store.find_records(EntityKind.REVIEW, {})
    return sendResponse(200, True, "Reviews fetched successfully", reviews)


@api_blueprint.route("/reviews/approved", methods=["GET"])
def svc_get_approved_reviews():
    reviews = site().store.find_records(EntityKind.REVIEW, {"isApproved": True}, limit=20)
    return sendResponse(200, True, "Approved reviews fetched successfully", {
        "reviews": reviews,
        "averageRating": site().store.average_rating(),
        "total": len(reviews)
    })


@api_blueprint.route("/reviews/<review_id>", methods=["GET"])
def svc_get_review(review_id):
    return _get_record(EntityKind.REVIEW, review_id)


@api_blueprint.route("/reviews", methods=["POST"])
def svc_create_review():
    return _create_record(EntityKind.REVIEW, ReviewCreate)


@api_blueprint.route("/reviews/<review_id>", methods=["PUT"])
def svc_update_review(review_id):
    return _update_record(EntityKind.REVIEW, ReviewUpdate, review_id)


@api_blueprint.route("/reviews/<review_id>", methods=["DELETE"])
def svc_delete_review(review_id):
    return _delete_record(EntityKind.REVIEW, review_id)
