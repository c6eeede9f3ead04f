"""
Models for reviews left by parents and students (the `reviews` collection).

`date` is the display date chosen by the client; `createdAt`/`updatedAt` are
set by the store.
"""

from datetime import date as calendar_date

from pydantic import Field, field_validator

from jbmmsi.dal.models.common import MongoBaseModel, checked_text, checked_flag


def _today():
    return calendar_date.today().isoformat()


class _ReviewFields(MongoBaseModel):
    @field_validator("name", check_fields=False)
    @classmethod
    def _check_name(cls, v):
        return checked_text(v, "Name", max_length=100)

    @field_validator("rating", check_fields=False)
    @classmethod
    def _check_rating(cls, v):
        if v is None:
            raise ValueError("Rating is required")
        if v < 1:
            raise ValueError("Rating must be at least 1")
        if v > 5:
            raise ValueError("Rating cannot exceed 5")
        return v

    @field_validator("comment", check_fields=False)
    @classmethod
    def _check_comment(cls, v):
        return checked_text(v, "Comment", 10, 500)

    @field_validator("date", check_fields=False)
    @classmethod
    def _check_date(cls, v):
        return checked_text(v, "Date")

    @field_validator("isApproved", check_fields=False)
    @classmethod
    def _check_approved(cls, v):
        return checked_flag(v, "Approved")


class ReviewCreate(_ReviewFields):
    name: str = Field(title="Name")
    rating: int = Field(title="Rating")
    comment: str = Field(title="Comment")
    date: str = Field(default_factory=_today, title="Date")
    isApproved: bool = Field(True, title="Approved")


class ReviewUpdate(_ReviewFields):
    name: str | None = Field(None, title="Name")
    rating: int | None = Field(None, title="Rating")
    comment: str | None = Field(None, title="Comment")
    date: str | None = Field(None, title="Date")
    isApproved: bool | None = Field(None, title="Approved")
