'''
The change relay.

Both the REST layer (right after a successful write) and the optional MongoDB change streams call notify().
notify() only validates and queues; a single worker then
- drops notifications older than what was already forwarded for the same record,
- looks up the current document for id-only notifications, with a timeout,
- drops anything already forwarded within the dedup window,
- and hands exactly one ChangeEvent to each sink (the connection registry, the Kafka mirror).

Nothing here ever raises back into the caller; the store is the source of truth and clients can always re-fetch.
'''

import time
import queue
import logging
import itertools
import threading
import concurrent.futures
from collections import OrderedDict

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from jbmmsi.dal.models.events import EntityKind, Operation, RawChange, ChangeEvent
from jbmmsi.dal.records import RecordStoreException
from jbmmsi.dal.utils import content_hash
from jbmmsi.relay.dedup import DedupWindow

logger = logging.getLogger(__name__)

_STOP = object()


class ChangeRelay(object):
    def __init__(self, store, sinks=(), formatter=None, dedup_window=5.0, dedup_max_entries=10000, resolve_timeout=2.0, clock=time.monotonic, resolver_threads=4):
        self.store = store
        self.sinks = list(sinks)
        self.formatter = formatter
        self.resolve_timeout = resolve_timeout
        self.dedup = DedupWindow(dedup_window, dedup_max_entries, clock=clock)
        # Last ordering token forwarded per (kind, id); bounded like the dedup window.
        self.last_sequence = OrderedDict()
        self.max_tracked_sequences = dedup_max_entries
        self.counters = {kind: itertools.count(1) for kind in EntityKind}
        self.notifications = queue.Queue()
        self.resolver_threads = resolver_threads
        self.resolver = self.__new_resolver__()
        self.resolver_closed = False
        self.worker = None

    def __new_resolver__(self):
        return concurrent.futures.ThreadPoolExecutor(max_workers=self.resolver_threads, thread_name_prefix="relay-resolve")

    def add_sink(self, sink):
        self.sinks.append(sink)

    def start(self):
        if self.worker and self.worker.is_alive():
            return
        if self.resolver_closed:
            # Restarted after stop(); the old pool cannot take any more lookups.
            self.resolver = self.__new_resolver__()
            self.resolver_closed = False
        self.worker = threading.Thread(target=self.__work__, name="change-relay", daemon=True)
        self.worker.start()
        logger.info("Change relay started")

    def stop(self, timeout=5.0):
        if self.worker and self.worker.is_alive():
            self.notifications.put(_STOP)
            self.worker.join(timeout)
        self.resolver.shutdown(wait=False, cancel_futures=True)
        self.resolver_closed = True
        logger.info("Change relay stopped")

    def flush(self):
        """
        Block until everything notified so far has been processed.
        """
        self.notifications.join()

    def notify(self, entity_kind, operation, entity_id, document=None, sequence=None, source="direct", payload=None):
        """
        Queue a notification. Returns False (and logs) if the notification is malformed; never raises.
        Callers that have already formatted the record (the REST layer) pass it as `payload`; otherwise the relay's formatter is used.
        """
        try:
            change = RawChange(entity_kind=entity_kind, operation=operation, entity_id=entity_id, document=document, payload=payload, sequence=sequence, source=source)
        except ValidationError as e:
            logger.warning("Dropping malformed %s notification %s/%s/%s: %s", source, entity_kind, operation, entity_id, e)
            return False
        self.notifications.put(change)
        return True

    def __work__(self):
        while True:
            change = self.notifications.get()
            try:
                if change is _STOP:
                    return
                self.process(change)
            except Exception:
                logger.exception("Exception relaying change %s", change)
            finally:
                self.notifications.task_done()

    def process(self, change):
        """
        Turn one notification into at most one forwarded event. Returns the event or None if it was dropped.
        """
        record_key = (change.entity_kind, change.entity_id)
        if change.sequence is not None and self.__is_stale__(record_key, change.sequence):
            logger.debug("Dropping out of order %s notification for %s %s", change.source, change.entity_kind.value, change.entity_id)
            return None

        if change.operation == Operation.DELETED:
            document = None
            fingerprint = ""
        else:
            document = change.document
            if document is None:
                document = self.__resolve__(change)
                if document is None:
                    return None
            fingerprint = content_hash(document)

        dedup_key = (change.entity_kind, change.entity_id, change.operation, fingerprint)
        if self.dedup.seen(dedup_key):
            logger.debug("Duplicate %s notification for %s %s %s", change.source, change.operation.value, change.entity_kind.value, change.entity_id)
            return None
        self.dedup.record(dedup_key)
        if change.sequence is not None:
            self.__remember_sequence__(record_key, change.sequence)

        if document is None:
            payload = {"id": change.entity_id}
        elif change.payload is not None:
            payload = change.payload
        elif self.formatter:
            payload = self.formatter(change.entity_kind, document)
        else:
            payload = document

        event = ChangeEvent(
            entity_kind=change.entity_kind,
            operation=change.operation,
            entity_id=change.entity_id,
            payload=payload,
            source_sequence=next(self.counters[change.entity_kind]))
        logger.info("Relaying %s for %s (from %s)", event.name, event.entity_id, change.source)
        for sink in self.sinks:
            try:
                sink(event)
            except Exception:
                logger.exception("Exception sending %s to %s", event.name, sink)
        return event

    def __is_stale__(self, record_key, sequence):
        last = self.last_sequence.get(record_key)
        try:
            return last is not None and sequence <= last
        except TypeError:
            # Tokens from different sources are not comparable; fall back to arrival order.
            return False

    def __remember_sequence__(self, record_key, sequence):
        self.last_sequence.pop(record_key, None)
        self.last_sequence[record_key] = sequence
        while len(self.last_sequence) > self.max_tracked_sequences:
            self.last_sequence.popitem(last=False)

    def __resolve__(self, change):
        """
        Fetch the current document for an id only notification.
        A record that vanished (for example, updated and then quickly deleted) is a benign race; we just drop the notification.
        """
        future = self.resolver.submit(self.store.find_by_id, change.entity_kind, change.entity_id)
        try:
            document = future.result(timeout=self.resolve_timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            logger.warning("Timed out after %ss looking up %s %s; dropping the %s notification", self.resolve_timeout, change.entity_kind.value, change.entity_id, change.operation.value)
            return None
        except (RecordStoreException, PyMongoError):
            logger.exception("Cannot look up %s %s; dropping the %s notification", change.entity_kind.value, change.entity_id, change.operation.value)
            return None
        if document is None:
            logger.info("%s %s no longer exists; dropping the %s notification", change.entity_kind.value, change.entity_id, change.operation.value)
        return document
