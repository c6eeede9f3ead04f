'''
Everything outside the record API; the banner, health, docs and the uploaded images.
'''

import logging
import mimetypes
import resource

from flask import Blueprint, current_app, request, send_file, abort, jsonify
from pymongo.errors import PyMongoError

from jbmmsi import __version__
from jbmmsi.blueprints.api import sendResponse
from jbmmsi.dal.models import EntityKind
from jbmmsi.dal.utils import utcnow

pages_blueprint = Blueprint('pages_api', __name__)

logger = logging.getLogger(__name__)


def site():
    return current_app.extensions["jbmmsi"]


@pages_blueprint.route("/")
def index():
    return jsonify({
        "message": "JBMMSI backend server is running!",
        "version": __version__,
        "timestamp": utcnow().isoformat(),
        "endpoints": {
            "health": "/api/health",
            "docs": "/api/docs",
            "uploads": "/uploads"
        }
    })


@pages_blueprint.route("/api/health")
def health():
    ctx = site()
    try:
        ctx.store.ping()
        database = "connected"
    except Exception:
        logger.exception("Database ping failed")
        database = "disconnected"
    try:
        stats = {kind.collection: ctx.store.count(kind) for kind in EntityKind}
    except PyMongoError:
        logger.exception("Health check failed")
        return sendResponse(500, False, "Health check failed")
    return sendResponse(200, True, "Server is healthy", {
        "status": "OK",
        "timestamp": utcnow(),
        "database": database,
        "version": __version__,
        "memory": {"maxrss_kb": resource.getrusage(resource.RUSAGE_SELF).ru_maxrss},
        "websockets": ctx.registry.count(),
        "uploads": "Active" if ctx.images.is_available() else "Unavailable",
        "stats": stats
    })


@pages_blueprint.route("/api/docs")
def docs():
    return jsonify({
        "message": "JBMMSI API Documentation",
        "version": __version__,
        "endpoints": {
            "Inquiries": {
                "GET /api/inquiries": "Get all inquiries (page, limit, status)",
                "POST /api/inquiries": "Submit a new inquiry",
                "PATCH /api/inquiries/:id/status": "Update the status of an inquiry",
                "DELETE /api/inquiries/:id": "Delete an inquiry"
            },
            "Announcements": {
                "GET /api/announcements": "Get all announcements (page, limit, active)",
                "GET /api/announcements/active": "Get the latest active announcements",
                "GET /api/announcements/:id": "Get an announcement",
                "POST /api/announcements": "Create an announcement (multipart with image)",
                "PUT /api/announcements/:id": "Update an announcement",
                "DELETE /api/announcements/:id": "Delete an announcement"
            },
            "Schools": {
                "GET /api/schools": "Get all schools",
                "GET /api/schools/active": "Get the active schools for the gallery",
                "GET /api/schools/:id": "Get a school",
                "POST /api/schools": "Create a school (multipart with image)",
                "PUT /api/schools/:id": "Update a school",
                "DELETE /api/schools/:id": "Delete a school"
            },
            "Reviews": {
                "GET /api/reviews": "Get all reviews",
                "GET /api/reviews/approved": "Get approved reviews and the average rating",
                "GET /api/reviews/:id": "Get a review",
                "POST /api/reviews": "Submit a review",
                "PUT /api/reviews/:id": "Update a review",
                "DELETE /api/reviews/:id": "Delete a review"
            },
            "Realtime": {
                "join_announcements": "Receive announcement_created/updated/deleted",
                "join_schools": "Receive school_created/updated/deleted",
                "join_reviews": "Receive review_created/updated/deleted",
                "join_inquiries": "Receive inquiry_created/updated/deleted",
                "join_all": "Receive everything (the default)"
            }
        }
    })


@pages_blueprint.route("/uploads/<path:name>")
def uploaded_image(name):
    contents = site().images.return_file_contents(name)
    if contents is None:
        logger.error("Cannot find uploaded image %s", name)
        abort(404)
    mimetype = mimetypes.guess_type(name)[0] or "application/octet-stream"
    return send_file(contents, mimetype=mimetype, download_name=name)


@pages_blueprint.app_errorhandler(404)
def not_found(e):
    if request.path.startswith("/api/"):
        return sendResponse(404, False, "API endpoint not found")
    return sendResponse(404, False, "Not found")
