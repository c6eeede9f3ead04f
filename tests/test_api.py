import io

from bson import ObjectId

from jbmmsi.dal.models import EntityKind, Topic

from tests.test_sockets import wait_for_topics

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def new_inquiry(**kwargs):
    info = {
        "name": "Ravi Kumar",
        "email": "ravi@example.com",
        "program": "Primary",
        "grade": "Grade 3",
        "message": "Please share the admission schedule."
    }
    info.update(kwargs)
    return info


def new_review(**kwargs):
    info = {"name": "Meena", "rating": 5, "comment": "Great school with caring teachers"}
    info.update(kwargs)
    return info


def add_school(client, name="Green Valley", filename="logo.png"):
    return client.post("/api/schools", data={"name": name, "image": (io.BytesIO(PNG), filename, "image/png")}, content_type="multipart/form-data")


def add_announcement(client, title="Sports day", **kwargs):
    data = {"title": title, "date": "2024-06-01", "description": "Annual sports day on the main ground.", "image": (io.BytesIO(PNG), "sports.png", "image/png")}
    data.update(kwargs)
    return client.post("/api/announcements", data=data, content_type="multipart/form-data")


def test_index_and_docs(client):
    assert client.get("/").get_json()["endpoints"]["health"] == "/api/health"
    assert "Inquiries" in client.get("/api/docs").get_json()["endpoints"]


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "OK"
    assert data["uploads"] == "Active"
    assert data["stats"] == {"inquiries": 0, "announcements": 0, "schools": 0, "reviews": 0}


def test_unknown_api_endpoint(client):
    resp = client.get("/api/nothing/here")
    assert resp.status_code == 404
    assert resp.get_json() == {"success": False, "message": "API endpoint not found"}


def test_submit_and_list_inquiries(client):
    resp = client.post("/api/inquiries", json=new_inquiry())
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"]
    inquiry_id = body["data"]["id"]
    assert ObjectId.is_valid(inquiry_id)

    client.post("/api/inquiries", json=new_inquiry(name="Anita"))
    listing = client.get("/api/inquiries?limit=1").get_json()["data"]
    assert listing["total"] == 2
    assert listing["totalPages"] == 2
    assert listing["currentPage"] == 1
    assert len(listing["inquiries"]) == 1
    assert listing["inquiries"][0]["status"] == "new"


def test_inquiry_validation_error(client):
    resp = client.post("/api/inquiries", json=new_inquiry(email="nope", message="hi"))
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Validation error: Please enter a valid email, Message must be at least 10 characters long"


def test_inquiry_status_flow(client):
    inquiry_id = client.post("/api/inquiries", json=new_inquiry()).get_json()["data"]["id"]
    resp = client.patch("/api/inquiries/%s/status" % inquiry_id, json={"status": "contacted"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "contacted"
    assert client.get("/api/inquiries?status=contacted").get_json()["data"]["total"] == 1
    assert client.get("/api/inquiries?status=new").get_json()["data"]["total"] == 0

    assert client.patch("/api/inquiries/%s/status" % inquiry_id, json={"status": "lost"}).status_code == 400
    assert client.patch("/api/inquiries/%s/status" % ObjectId(), json={"status": "resolved"}).status_code == 404

    assert client.delete("/api/inquiries/%s" % inquiry_id).status_code == 200
    resp = client.delete("/api/inquiries/%s" % inquiry_id)
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "Inquiry not found"


def test_invalid_id(client):
    resp = client.get("/api/reviews/1234")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invalid ID format"


def test_announcement_with_upload(client, site):
    resp = add_announcement(client)
    assert resp.status_code == 201
    announcement = resp.get_json()["data"]
    assert announcement["image"].startswith("http://jbmmsi.test/uploads/")
    assert announcement["isActive"] is True

    name = announcement["image"].rsplit("/", 1)[1]
    image = client.get("/uploads/" + name)
    assert image.status_code == 200
    assert image.data == PNG
    image.close()

    resp = client.delete("/api/announcements/%s" % announcement["_id"])
    assert resp.status_code == 200
    assert site.images.return_file_contents(name) is None


def test_announcement_listing_and_active(client):
    add_announcement(client, title="One")
    add_announcement(client, title="Two", isActive="false")
    assert client.get("/api/announcements").get_json()["data"]["total"] == 2
    assert client.get("/api/announcements?active=false").get_json()["data"]["total"] == 1
    active = client.get("/api/announcements/active").get_json()["data"]
    assert [x["title"] for x in active] == ["One"]


def test_announcement_with_image_url_as_json(client):
    resp = client.post("/api/announcements", json={"title": "Results", "date": "2024-05-20", "description": "Board results are out.", "image": "https://cdn.example.com/results.jpg"})
    assert resp.status_code == 201
    assert resp.get_json()["data"]["image"] == "https://cdn.example.com/results.jpg"


def test_announcement_needs_an_image(client):
    resp = client.post("/api/announcements", json={"title": "Results", "date": "2024-05-20", "description": "Board results are out."})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Validation error: Image is required"


def test_non_image_upload_is_rejected(client):
    resp = client.post("/api/schools", data={"name": "Green Valley", "image": (io.BytesIO(b"MZ"), "logo.exe", "application/octet-stream")}, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Error: Images only (JPEG, JPG, PNG, GIF, WEBP, SVG)!"


def test_oversized_upload_is_rejected(client):
    big = b"\x00" * (1024 * 1024 + 1)
    resp = client.post("/api/schools", data={"name": "Green Valley", "image": (io.BytesIO(big), "logo.png", "image/png")}, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "File too large. Maximum size is 1MB."


def test_failed_validation_removes_the_stored_upload(client, site, tmp_path):
    resp = add_school(client, name="")
    assert resp.status_code == 400
    assert list((tmp_path / "uploads").iterdir()) == []


def test_school_update_replaces_the_image(client, tmp_path):
    school = add_school(client).get_json()["data"]
    old_name = school["imageUrl"].rsplit("/", 1)[1]
    resp = client.put("/api/schools/%s" % school["_id"], data={"image": (io.BytesIO(PNG), "new-logo.png", "image/png")}, content_type="multipart/form-data")
    assert resp.status_code == 200
    updated = resp.get_json()["data"]
    assert updated["name"] == "Green Valley"
    assert updated["imageUrl"] != school["imageUrl"]
    assert not (tmp_path / "uploads" / old_name).exists()


def test_active_schools_gallery(client):
    add_school(client, name="Green Valley")
    hidden = add_school(client, name="Hill Top").get_json()["data"]
    client.put("/api/schools/%s" % hidden["_id"], json={"isActive": False})
    gallery = client.get("/api/schools/active").get_json()["data"]
    assert [x["name"] for x in gallery] == ["Green Valley"]
    assert set(gallery[0].keys()) == {"_id", "name", "imageUrl", "createdAt", "updatedAt"}
    assert len(client.get("/api/schools").get_json()["data"]) == 2


def test_missing_school(client):
    resp = client.get("/api/schools/%s" % ObjectId())
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "School not found"


def test_reviews_and_average(client):
    client.post("/api/reviews", json=new_review(rating=5))
    client.post("/api/reviews", json=new_review(rating=4))
    hidden = client.post("/api/reviews", json=new_review(rating=1, isApproved=False)).get_json()["data"]
    approved = client.get("/api/reviews/approved").get_json()["data"]
    assert approved["total"] == 2
    assert approved["averageRating"] == 4.5
    assert len(client.get("/api/reviews").get_json()["data"]) == 3

    resp = client.put("/api/reviews/%s" % hidden["_id"], json={"isApproved": True})
    assert resp.status_code == 200
    assert client.get("/api/reviews/approved").get_json()["data"]["averageRating"] == 3.3


def test_review_rating_validation(client):
    resp = client.post("/api/reviews", json=new_review(rating=9))
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Validation error: Rating cannot exceed 5"


# Real-time events

def received_events(socket_client):
    return [(x["name"], x["args"][0]) for x in socket_client.get_received()]


def test_connect_acknowledgement(socket_client, site):
    events = received_events(socket_client)
    assert events[0][0] == "connected"
    assert events[0][1]["message"] == "Connected to real-time server"
    assert site.registry.count() == 1


def test_writes_are_pushed_to_connected_clients(client, socket_client, site):
    socket_client.get_received()
    review = client.post("/api/reviews", json=new_review()).get_json()["data"]
    client.put("/api/reviews/%s" % review["_id"], json={"rating": 4})
    client.delete("/api/reviews/%s" % review["_id"])
    site.relay.flush()
    events = received_events(socket_client)
    assert [name for name, _ in events] == ["review_created", "review_updated", "review_deleted"]
    assert events[0][1]["_id"] == review["_id"]
    assert events[1][1]["rating"] == 4
    assert events[2][1] == {"id": review["_id"]}


def test_pushed_images_have_full_urls(client, socket_client, site):
    socket_client.get_received()
    add_school(client)
    site.relay.flush()
    name, data = received_events(socket_client)[0]
    assert name == "school_created"
    assert data["imageUrl"].startswith("http://jbmmsi.test/uploads/")


def test_joined_topics_filter_events(app, client, socket_client, site):
    schools_client = site.socketio.test_client(app)
    try:
        schools_client.emit("join_schools")
        assert wait_for_topics(site.registry, frozenset([Topic.SCHOOLS]))
        schools_client.get_received()
        socket_client.get_received()

        client.post("/api/reviews", json=new_review())
        client.post("/api/inquiries", json=new_inquiry())
        add_school(client)
        site.relay.flush()

        assert [name for name, _ in received_events(schools_client)] == ["school_created"]
        assert [name for name, _ in received_events(socket_client)] == ["review_created", "inquiry_created", "school_created"]
    finally:
        schools_client.disconnect()


def test_disconnect_unregisters(socket_client, site):
    assert site.registry.count() == 1
    socket_client.disconnect()
    assert site.registry.count() == 0


def test_change_stream_copy_of_a_write_is_not_pushed_twice(client, socket_client, site):
    socket_client.get_received()
    review = client.post("/api/reviews", json=new_review()).get_json()["data"]
    record = site.store.find_by_id(EntityKind.REVIEW, review["_id"])
    site.relay.notify("Review", "Created", review["_id"], document=record, source="changestream")
    site.relay.flush()
    assert [name for name, _ in received_events(socket_client)] == ["review_created"]


def test_flags_cannot_be_cleared(client):
    school = add_school(client).get_json()["data"]
    resp = client.put("/api/schools/%s" % school["_id"], json={"isActive": None})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Validation error: Active must be true or false"
    assert client.get("/api/schools/%s" % school["_id"]).get_json()["data"]["isActive"] is True
    assert [x["name"] for x in client.get("/api/schools/active").get_json()["data"]] == ["Green Valley"]
