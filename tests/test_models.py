import pytest

from jbmmsi.dal.models import (
    RecordValidationError,
    validate_record,
    InquiryCreate,
    InquiryStatusUpdate,
    AnnouncementCreate,
    AnnouncementUpdate,
    SchoolCreate,
    SchoolUpdate,
    ReviewCreate,
    ReviewUpdate,
)


def inquiry(**kwargs):
    info = {
        "name": "Ravi Kumar",
        "email": "Ravi.Kumar@Example.com",
        "phone": "+919876543210",
        "program": "Primary",
        "grade": "Grade 3",
        "message": "Please share the admission schedule."
    }
    info.update(kwargs)
    return info


def test_inquiry_is_normalized():
    doc = validate_record(InquiryCreate, inquiry(name="  Ravi Kumar ")).to_document()
    assert doc["name"] == "Ravi Kumar"
    assert doc["email"] == "ravi.kumar@example.com"
    assert doc["status"] == "new"
    assert doc["timestamp"] is not None


def test_inquiry_phone_is_optional():
    doc = validate_record(InquiryCreate, inquiry(phone="")).to_document()
    assert doc["phone"] is None


def test_inquiry_messages():
    with pytest.raises(RecordValidationError) as exc:
        validate_record(InquiryCreate, inquiry(name="R", email="not-an-email", message="short", phone="abc"))
    assert exc.value.messages == [
        "Name must be at least 2 characters long",
        "Please enter a valid email",
        "Please enter a valid phone number",
        "Message must be at least 10 characters long",
    ]


def test_missing_fields_are_required():
    with pytest.raises(RecordValidationError) as exc:
        validate_record(InquiryCreate, {})
    assert "Name is required" in exc.value.messages
    assert "Program is required" in exc.value.messages


def test_inquiry_status_must_be_known():
    assert validate_record(InquiryStatusUpdate, {"status": "contacted"}).status == "contacted"
    with pytest.raises(RecordValidationError):
        validate_record(InquiryStatusUpdate, {"status": "archived"})


def test_announcement_limits():
    with pytest.raises(RecordValidationError) as exc:
        validate_record(AnnouncementCreate, {"title": "x" * 201, "date": "2024-06-01", "description": "Sports day", "image": "a.png"})
    assert exc.value.messages == ["Title cannot exceed 200 characters"]


def test_announcement_update_only_has_the_sent_fields():
    changes = validate_record(AnnouncementUpdate, {"isActive": "false"}).to_document(exclude_unset=True)
    assert changes == {"isActive": False}


def test_school_name_label():
    with pytest.raises(RecordValidationError) as exc:
        validate_record(SchoolCreate, {"name": " ", "imageUrl": "logo.png"})
    assert exc.value.messages == ["School name is required"]


@pytest.mark.parametrize("rating,message", [(0, "Rating must be at least 1"), (6, "Rating cannot exceed 5")])
def test_review_rating_range(rating, message):
    with pytest.raises(RecordValidationError) as exc:
        validate_record(ReviewCreate, {"name": "Meena", "rating": rating, "comment": "Lovely campus and staff"})
    assert exc.value.messages == [message]


def test_review_defaults():
    review = validate_record(ReviewCreate, {"name": "Meena", "rating": "4", "comment": "Lovely campus and staff"})
    assert review.rating == 4
    assert review.isApproved is True
    assert len(review.date) == 10


def test_review_update_checks_what_is_sent():
    with pytest.raises(RecordValidationError) as exc:
        validate_record(ReviewUpdate, {"comment": "meh"})
    assert exc.value.messages == ["Comment must be at least 10 characters long"]


@pytest.mark.parametrize("model,field,label", [
    (SchoolUpdate, "isActive", "Active"),
    (AnnouncementUpdate, "isActive", "Active"),
    (ReviewUpdate, "isApproved", "Approved"),
])
def test_update_flags_reject_null(model, field, label):
    with pytest.raises(RecordValidationError) as exc:
        validate_record(model, {field: None})
    assert exc.value.messages == ["%s must be true or false" % label]
    assert validate_record(model, {field: False}).to_document(exclude_unset=True) == {field: False}
