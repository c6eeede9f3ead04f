"""
Pydantic models for the jbmmsi data access layer.

The record models validate what the website sends before it reaches MongoDB;
the event models describe the notifications flowing through the change relay.
"""

from jbmmsi.dal.models.common import PyObjectId, RecordValidationError, validate_record
from jbmmsi.dal.models.inquiries import InquiryCreate, InquiryStatusUpdate, INQUIRY_STATUSES
from jbmmsi.dal.models.announcements import AnnouncementCreate, AnnouncementUpdate
from jbmmsi.dal.models.schools import SchoolCreate, SchoolUpdate
from jbmmsi.dal.models.reviews import ReviewCreate, ReviewUpdate
from jbmmsi.dal.models.events import EntityKind, Operation, Topic, RawChange, ChangeEvent

__all__ = [
    # Common
    "PyObjectId",
    "RecordValidationError",
    "validate_record",
    # Inquiries
    "InquiryCreate",
    "InquiryStatusUpdate",
    "INQUIRY_STATUSES",
    # Announcements
    "AnnouncementCreate",
    "AnnouncementUpdate",
    # Schools
    "SchoolCreate",
    "SchoolUpdate",
    # Reviews
    "ReviewCreate",
    "ReviewUpdate",
    # Change events
    "EntityKind",
    "Operation",
    "Topic",
    "RawChange",
    "ChangeEvent",
]
