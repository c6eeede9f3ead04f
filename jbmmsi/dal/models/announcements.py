"""
Models for announcements shown on the home page.

Announcements are stored in the `announcements` collection. `image` holds the
name of the uploaded image (or an absolute URL); it is expanded into a full
URL when the announcement is sent out.
"""

from pydantic import Field, field_validator

from jbmmsi.dal.models.common import MongoBaseModel, checked_text, checked_flag


class _AnnouncementFields(MongoBaseModel):
    @field_validator("title", check_fields=False)
    @classmethod
    def _check_title(cls, v):
        return checked_text(v, "Title", max_length=200)

    @field_validator("date", check_fields=False)
    @classmethod
    def _check_date(cls, v):
        return checked_text(v, "Date")

    @field_validator("description", check_fields=False)
    @classmethod
    def _check_description(cls, v):
        return checked_text(v, "Description", max_length=2000)

    @field_validator("image", check_fields=False)
    @classmethod
    def _check_image(cls, v):
        return checked_text(v, "Image")

    @field_validator("isActive", check_fields=False)
    @classmethod
    def _check_active(cls, v):
        return checked_flag(v, "Active")


class AnnouncementCreate(_AnnouncementFields):
    title: str = Field(title="Title")
    date: str = Field(title="Date")
    description: str = Field(title="Description")
    image: str = Field(title="Image")
    isActive: bool = Field(True, title="Active")


class AnnouncementUpdate(_AnnouncementFields):
    """
    PUT body; only the fields that are sent are changed.
    """

    title: str | None = Field(None, title="Title")
    date: str | None = Field(None, title="Date")
    description: str | None = Field(None, title="Description")
    image: str | None = Field(None, title="Image")
    isActive: bool | None = Field(None, title="Active")
