"""
Models for inquiries submitted through the website's contact form.

Inquiries are stored in the `inquiries` collection. Staff move them through
the `new` -> `contacted` -> `resolved` statuses.
"""

import re
from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from jbmmsi.dal.models.common import MongoBaseModel, checked_text
from jbmmsi.dal.utils import utcnow

EMAIL_PATTERN = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")
PHONE_PATTERN = re.compile(r"^[\+]?[1-9][\d]{0,15}$")

INQUIRY_STATUSES = ("new", "contacted", "resolved")


class InquiryCreate(MongoBaseModel):
    """
    Request model for a new inquiry.
    The status always starts as `new`; clients cannot set it.
    """

    name: str = Field(title="Name")
    email: str = Field(title="Email")
    phone: str | None = Field(None, title="Phone")
    program: str = Field(title="Program")
    grade: str = Field(title="Grade")
    message: str = Field(title="Message")
    timestamp: datetime = Field(default_factory=utcnow, title="Timestamp")

    @field_validator("name")
    @classmethod
    def _check_name(cls, v):
        return checked_text(v, "Name", 2, 100)

    @field_validator("email")
    @classmethod
    def _check_email(cls, v):
        v = checked_text(v, "Email").lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Please enter a valid email")
        return v

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, v):
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not PHONE_PATTERN.match(v):
            raise ValueError("Please enter a valid phone number")
        return v

    @field_validator("program")
    @classmethod
    def _check_program(cls, v):
        return checked_text(v, "Program")

    @field_validator("grade")
    @classmethod
    def _check_grade(cls, v):
        return checked_text(v, "Grade")

    @field_validator("message")
    @classmethod
    def _check_message(cls, v):
        return checked_text(v, "Message", 10, 1000)

    def to_document(self, exclude_unset=False):
        doc = super().to_document(exclude_unset=exclude_unset)
        doc["status"] = "new"
        return doc


class InquiryStatusUpdate(MongoBaseModel):
    status: Literal["new", "contacted", "resolved"] = Field(title="Status")
