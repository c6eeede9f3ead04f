"""
Backend for the JBMMSI school website.

REST endpoints for inquiries, announcements, the school gallery and reviews,
with every mutation relayed to connected Socket.IO clients.
"""

__version__ = "2.0.0"
