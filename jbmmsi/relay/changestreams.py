'''
The second notification path; MongoDB change streams on each collection.
Needs a replica set. Everything seen here goes through the same ChangeRelay.notify as the REST layer;
the relay takes care of the writes that both paths report.
'''

import logging
import threading

from pymongo.errors import PyMongoError

from jbmmsi.dal.models.events import EntityKind, Operation

logger = logging.getLogger(__name__)

OPERATIONS = {
    "insert": Operation.CREATED,
    "update": Operation.UPDATED,
    "replace": Operation.UPDATED,
    "delete": Operation.DELETED,
}


class ChangeStreamWatcher(object):
    def __init__(self, database, relay, kinds=tuple(EntityKind), retry_delay=5.0, max_await_time_ms=1000):
        self.database = database
        self.relay = relay
        self.kinds = kinds
        self.retry_delay = retry_delay
        self.max_await_time_ms = max_await_time_ms
        self.stopped = threading.Event()
        self.threads = []

    def start(self):
        for kind in self.kinds:
            watch_thread = threading.Thread(target=self.__watch__, args=(kind,), name="changestream-" + kind.collection, daemon=True)
            watch_thread.start()
            self.threads.append(watch_thread)
        logger.info("All MongoDB change streams activated")

    def stop(self):
        self.stopped.set()
        for watch_thread in self.threads:
            watch_thread.join(self.max_await_time_ms / 1000.0 + 1)

    def handle_change(self, kind, change):
        """
        Translate one change stream document into a relay notification.
        """
        operation = OPERATIONS.get(change.get("operationType"))
        if operation is None:
            logger.debug("Ignoring %s change on %s", change.get("operationType"), kind.collection)
            return False
        logger.debug("MongoDB change detected in %s: %s", kind.collection, change["operationType"])
        document_key = change.get("documentKey") or {}
        cluster_time = change.get("clusterTime")
        sequence = (cluster_time.time, cluster_time.inc) if cluster_time is not None else None
        document = change.get("fullDocument") if operation == Operation.CREATED else None
        return self.relay.notify(kind, operation, document_key.get("_id"), document=document, sequence=sequence, source="changestream")

    def __watch__(self, kind):
        resume_token = None
        while not self.stopped.is_set():
            try:
                with self.database[kind.collection].watch(resume_after=resume_token, max_await_time_ms=self.max_await_time_ms) as stream:
                    while stream.alive and not self.stopped.is_set():
                        change = stream.try_next()
                        resume_token = stream.resume_token
                        if change is not None:
                            self.handle_change(kind, change)
            except PyMongoError:
                if self.stopped.is_set():
                    break
                logger.exception("Exception watching %s; retrying in %ss", kind.collection, self.retry_delay)
                self.stopped.wait(self.retry_delay)
