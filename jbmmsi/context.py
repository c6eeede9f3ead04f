import logging
import os

from pymongo import MongoClient

logger = logging.getLogger(__name__)

# Application context.
# Everything here is read from the environment once; create_app overlays explicit overrides on top of these.

MONGODB_HOST=os.environ.get('MONGODB_HOST', "localhost")
MONGODB_PORT=int(os.environ.get('MONGODB_PORT', 27017))
MONGODB_URL=os.environ.get("MONGODB_ATLAS_URI", None) or os.environ.get("MONGODB_URI", None) or os.environ.get("MONGODB_URL", None)
if not MONGODB_URL:
    MONGODB_URL = "mongodb://" + MONGODB_HOST + ":" + str(MONGODB_PORT) + "/"
MONGODB_DATABASE = os.environ.get("MONGODB_DATABASE", "jbmmsi")
# Bounds every store call; the relay's record lookups rely on this as well as on their own timeout.
MONGODB_TIMEOUT_MS = int(os.environ.get("MONGODB_TIMEOUT_MS", 5000))

# Public base URL used to build image URLs. If not set, the host of the incoming request is used.
BASE_URL = os.environ.get("BASE_URL", None)

# Where uploaded images go; file://<folder> or mongo:// for GridFS in the site database.
IMAGE_STORE_URL = os.environ.get("IMAGE_STORE_URL", "file://uploads")
MAX_UPLOAD_SIZE = int(os.environ.get("MAX_UPLOAD_SIZE", 10 * 1024 * 1024))

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:5173,https://your-frontend-domain.vercel.app,https://your-frontend-domain.netlify.app"
CORS_ORIGINS = [x.strip() for x in os.environ.get("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",") if x.strip()]

# MongoDB change streams need a replica set; the REST layer always notifies the relay directly.
CHANGE_STREAMS_ENABLED = os.environ.get("CHANGE_STREAMS_ENABLED", "false").lower() in ["1", "true", "yes"]

RELAY_DEDUP_WINDOW = float(os.environ.get("RELAY_DEDUP_WINDOW", 5.0))
RELAY_DEDUP_MAX_ENTRIES = int(os.environ.get("RELAY_DEDUP_MAX_ENTRIES", 10000))
RELAY_RESOLVE_TIMEOUT = float(os.environ.get("RELAY_RESOLVE_TIMEOUT", 2.0))

KAFKA_BOOTSTRAP_SERVER = os.environ.get("KAFKA_BOOTSTRAP_SERVER", None)
SKIP_KAFKA_CONNECTION = bool(os.environ.get("SKIP_KAFKA_CONNECTION", False))
# Longest a publish may wait for broker metadata; publishing happens on the relay worker.
KAFKA_MAX_BLOCK_MS = int(os.environ.get("KAFKA_MAX_BLOCK_MS", 500))

SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "eventlet")


def default_config():
    """
    The configuration as read from the environment, in the form Flask's app.config expects.
    """
    return {
        "MONGODB_URL": MONGODB_URL,
        "MONGODB_DATABASE": MONGODB_DATABASE,
        "MONGODB_TIMEOUT_MS": MONGODB_TIMEOUT_MS,
        "BASE_URL": BASE_URL,
        "IMAGE_STORE_URL": IMAGE_STORE_URL,
        "MAX_UPLOAD_SIZE": MAX_UPLOAD_SIZE,
        "CORS_ORIGINS": CORS_ORIGINS,
        "CHANGE_STREAMS_ENABLED": CHANGE_STREAMS_ENABLED,
        "RELAY_DEDUP_WINDOW": RELAY_DEDUP_WINDOW,
        "RELAY_DEDUP_MAX_ENTRIES": RELAY_DEDUP_MAX_ENTRIES,
        "RELAY_RESOLVE_TIMEOUT": RELAY_RESOLVE_TIMEOUT,
        "KAFKA_BOOTSTRAP_SERVER": KAFKA_BOOTSTRAP_SERVER,
        "SKIP_KAFKA_CONNECTION": SKIP_KAFKA_CONNECTION,
        "KAFKA_MAX_BLOCK_MS": KAFKA_MAX_BLOCK_MS,
        "SOCKETIO_ASYNC_MODE": SOCKETIO_ASYNC_MODE,
    }


def get_site_database(config):
    timeout_ms = config["MONGODB_TIMEOUT_MS"]
    client = MongoClient(host=config["MONGODB_URL"], tz_aware=True, serverSelectionTimeoutMS=timeout_ms, socketTimeoutMS=timeout_ms, connectTimeoutMS=timeout_ms)
    logger.info("Using database %s", config["MONGODB_DATABASE"])
    return client[config["MONGODB_DATABASE"]]


class SiteContext(object):
    """
    The handles the request handlers need, built once by create_app.
    Stored in app.extensions["jbmmsi"]; nothing here is a module level global.
    """
    def __init__(self, store, images, registry, relay, socketio, watcher=None):
        self.store = store
        self.images = images
        self.registry = registry
        self.relay = relay
        self.socketio = socketio
        self.watcher = watcher

    def shutdown(self):
        if self.watcher:
            self.watcher.stop()
        self.relay.stop()
