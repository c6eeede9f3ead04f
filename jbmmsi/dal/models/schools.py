"""
Models for the school logo gallery (the `schools` collection).
"""

from pydantic import Field, field_validator

from jbmmsi.dal.models.common import MongoBaseModel, checked_text, checked_flag


class _SchoolFields(MongoBaseModel):
    @field_validator("name", check_fields=False)
    @classmethod
    def _check_name(cls, v):
        return checked_text(v, "School name", max_length=100)

    @field_validator("imageUrl", check_fields=False)
    @classmethod
    def _check_image_url(cls, v):
        return checked_text(v, "Image URL")

    @field_validator("isActive", check_fields=False)
    @classmethod
    def _check_active(cls, v):
        return checked_flag(v, "Active")


class SchoolCreate(_SchoolFields):
    name: str = Field(title="School name")
    imageUrl: str = Field(title="Image URL")
    isActive: bool = Field(True, title="Active")


class SchoolUpdate(_SchoolFields):
    name: str | None = Field(None, title="School name")
    imageUrl: str | None = Field(None, title="Image URL")
    isActive: bool | None = Field(None, title="Active")
