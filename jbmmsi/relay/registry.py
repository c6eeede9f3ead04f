'''
Live Socket.IO connections and the topics they joined.
'''

import logging
import threading

from jbmmsi.dal.models.events import Topic
from jbmmsi.dal.utils import utcnow, to_wire

logger = logging.getLogger(__name__)

UNRESTRICTED = frozenset([Topic.ALL])


class ConnectionRegistry(object):
    """
    Owns the subscription table.
    `send(connection_id, event_name, data)` does the actual delivery, typically socketio.emit(..., to=connection_id).

    The lock is held only to change the table or to take a snapshot of it; sending happens outside the lock
    so that a slow fan-out never holds up new connections.
    """
    def __init__(self, send):
        self.send = send
        self.lock = threading.Lock()
        self.connections = {}

    def register(self, connection_id):
        with self.lock:
            if connection_id not in self.connections:
                self.connections[connection_id] = UNRESTRICTED
        logger.info("New client connected %s", connection_id)
        self.__deliver__(connection_id, "connected", {
            "message": "Connected to real-time server",
            "timestamp": to_wire(utcnow()),
            "clientId": connection_id,
        })
        return connection_id

    def subscribe(self, connection_id, topic):
        """
        Join a topic; joining twice is the same as joining once.
        Joining a specific topic restricts the connection to the topics it joined; joining ALL lifts that restriction.
        """
        topic = Topic(topic)
        with self.lock:
            topics = self.connections.get(connection_id)
            if topics is None:
                logger.debug("Ignoring subscription to %s from unknown connection %s", topic.value, connection_id)
                return False
            if topic is Topic.ALL:
                self.connections[connection_id] = topics | UNRESTRICTED
            else:
                self.connections[connection_id] = (topics - UNRESTRICTED) | frozenset([topic])
        logger.info("Client %s joined %s", connection_id, topic.value)
        return True

    def unregister(self, connection_id):
        with self.lock:
            removed = self.connections.pop(connection_id, None)
        if removed is not None:
            logger.info("Client disconnected %s", connection_id)
        return removed is not None

    def topics_for(self, connection_id):
        with self.lock:
            return self.connections.get(connection_id)

    def count(self):
        with self.lock:
            return len(self.connections)

    def route(self, event):
        """
        Deliver the event to the unrestricted connections and to the connections that joined the event's topic.
        Returns the number of connections the event was sent to.
        """
        topic = event.topic
        with self.lock:
            targets = [cid for cid, topics in self.connections.items() if Topic.ALL in topics or topic in topics]
        data = event.wire_payload()
        delivered = 0
        for connection_id in targets:
            if connection_id not in self.connections:
                # Went away while we were iterating.
                continue
            if self.__deliver__(connection_id, event.name, data):
                delivered += 1
        logger.debug("Broadcasted %s to %s of %s clients", event.name, delivered, len(targets))
        return delivered

    def __deliver__(self, connection_id, event_name, data):
        try:
            self.send(connection_id, event_name, data)
            return True
        except Exception:
            logger.debug("Skipping delivery of %s to %s", event_name, connection_id, exc_info=True)
            return False
