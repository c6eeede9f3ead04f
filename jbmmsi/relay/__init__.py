'''
Change notification relay.
Mutations observed by the REST layer (and optionally by MongoDB change streams) are deduplicated here
and fanned out to the live Socket.IO connections.
'''

from jbmmsi.relay.dedup import DedupWindow
from jbmmsi.relay.registry import ConnectionRegistry
from jbmmsi.relay.relay import ChangeRelay

__all__ = ["DedupWindow", "ConnectionRegistry", "ChangeRelay"]
