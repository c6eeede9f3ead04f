'''
Build the Flask application; the REST blueprints, the Socket.IO server and the change relay sharing one SiteContext.
'''

import logging

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from jbmmsi.context import default_config, get_site_database, SiteContext
from jbmmsi.dal.formatting import RecordFormatter
from jbmmsi.dal.imagestores import parseImageStoreURL
from jbmmsi.dal.records import RecordStore
from jbmmsi.relay import ConnectionRegistry, ChangeRelay
from jbmmsi.relay.changestreams import ChangeStreamWatcher
from jbmmsi.relay.kafka import build_kafka_sink
from jbmmsi.blueprints.api import api_blueprint
from jbmmsi.blueprints.pages import pages_blueprint
from jbmmsi.blueprints.sockets import register_socket_handlers

logger = logging.getLogger(__name__)


def create_app(config=None, database=None):
    """
    `config` overrides the values read from the environment.
    `database` is an already connected pymongo (or mongomock) database; if not passed, we connect using MONGODB_URL.
    """
    app = Flask("jbmmsi")
    app.config.update(default_config())
    if config:
        app.config.update(config)
    app.config["MAX_CONTENT_LENGTH"] = app.config["MAX_UPLOAD_SIZE"]

    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}}, supports_credentials=True)
    socketio = SocketIO(app,
        async_mode=app.config["SOCKETIO_ASYNC_MODE"],
        cors_allowed_origins=app.config["CORS_ORIGINS"],
        always_connect=True,
        logger=False,
        engineio_logger=False)

    if database is None:
        database = get_site_database(app.config)
    store = RecordStore(database)
    images = parseImageStoreURL(app.config["IMAGE_STORE_URL"], database)

    registry = ConnectionRegistry(lambda connection_id, event_name, data: socketio.emit(event_name, data, to=connection_id))
    relay = ChangeRelay(store,
        sinks=[registry.route],
        formatter=RecordFormatter(app.config["BASE_URL"]),
        dedup_window=app.config["RELAY_DEDUP_WINDOW"],
        dedup_max_entries=app.config["RELAY_DEDUP_MAX_ENTRIES"],
        resolve_timeout=app.config["RELAY_RESOLVE_TIMEOUT"])
    kafka_sink = build_kafka_sink(app.config)
    if kafka_sink:
        relay.add_sink(kafka_sink)

    watcher = None
    if app.config["CHANGE_STREAMS_ENABLED"]:
        watcher = ChangeStreamWatcher(database, relay)

    app.extensions["jbmmsi"] = SiteContext(store, images, registry, relay, socketio, watcher=watcher)

    app.register_blueprint(pages_blueprint)
    app.register_blueprint(api_blueprint)
    register_socket_handlers(socketio, registry)

    relay.start()
    if watcher:
        watcher.start()

    logger.info("Server initialization complete")
    return app
