'''
Socket.IO handlers. A new connection receives everything until it joins a specific topic.
'''

import logging

from flask import request

from jbmmsi.dal.models import Topic

logger = logging.getLogger(__name__)


def _joiner(registry, topic):
    def join_topic(*args):
        try:
            return registry.subscribe(request.sid, topic)
        except ValueError:
            logger.warning("Client %s cannot join unknown topic %s", request.sid, topic)
            return False
    join_topic.__name__ = "join_" + topic.value
    return join_topic


def register_socket_handlers(socketio, registry):
    def on_connect(auth=None):
        registry.register(request.sid)

    def on_disconnect(reason=None):
        registry.unregister(request.sid)

    socketio.on_event("connect", on_connect)
    socketio.on_event("disconnect", on_disconnect)
    for topic in Topic:
        socketio.on_event("join_" + topic.value, _joiner(registry, topic))
    logger.debug("Registered socket handlers for %s", ", ".join(t.value for t in Topic))
