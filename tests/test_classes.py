"""Class CRUD and the Arabic-only name rule."""


class TestClassEndpoints:
    def test_create_and_fetch(self, client, make_class):
        created = make_class()
        assert created["name"] == "الصف الأول"
        assert created["name_en"] == "Grade One"

        response = client.get(f"/api/classes/{created['id']}")
        assert response.status_code == 200
        assert response.get_json()["id"] == created["id"]

    def test_list_newest_first(self, client, make_class):
        first = make_class("الصف الأول")
        second = make_class("الصف الثاني")
        ids = [row["id"] for row in client.get("/api/classes").get_json()]
        assert ids == [second["id"], first["id"]]

    def test_english_name_is_optional(self, admin_client):
        response = admin_client.post("/api/classes", json={"name": "الصف الثالث"})
        assert response.status_code == 201
        assert response.get_json()["name_en"] is None

    def test_name_required(self, admin_client):
        response = admin_client.post("/api/classes", json={"name": "   "})
        assert response.status_code == 400
        assert response.get_json()["code"] == "NAME_REQUIRED"

    def test_name_must_be_arabic(self, admin_client):
        response = admin_client.post("/api/classes", json={"name": "Grade 1"})
        assert response.status_code == 400
        assert response.get_json()["code"] == "INVALID_CHARACTERS"

    def test_anonymous_cannot_create(self, client):
        response = client.post("/api/classes", json={"name": "الصف الأول"})
        assert response.status_code == 401

    def test_update(self, admin_client, make_class):
        created = make_class()
        response = admin_client.put(f"/api/classes/{created['id']}", json={"name": "الصف الرابع", "name_en": "Grade Four"})
        assert response.status_code == 200
        assert response.get_json()["name"] == "الصف الرابع"

    def test_update_missing(self, admin_client):
        response = admin_client.put("/api/classes/999", json={"name": "الصف الرابع"})
        assert response.status_code == 404
        assert response.get_json()["code"] == "CLASS_NOT_FOUND"

    def test_delete_removes_children(self, client, admin_client, make_lesson, make_unit, make_class, make_question,
                                     db_run):
        school_class = make_class()
        unit = make_unit(class_id=school_class["id"])
        lesson = make_lesson(
            unit_id=unit["id"],
            videos=[{"video_url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ"}],
            images=[{"image_path": "https://res.cloudinary.com/demo/image/upload/sample.jpg"}],
        )
        assert (len(lesson["videos"]), len(lesson["images"])) == (1, 1)
        make_question(lesson_id=lesson["id"])

        response = admin_client.delete(f"/api/classes/{school_class['id']}")
        assert response.status_code == 200
        assert response.get_json()["success"] is True

        assert client.get(f"/api/classes/{school_class['id']}").status_code == 404
        assert client.get(f"/api/units/{unit['id']}").status_code == 404
        assert client.get(f"/api/lessons/{lesson['id']}").status_code == 404
        assert client.get(f"/api/lessons/{lesson['id']}/questions").status_code == 404
        for table in ("videos", "images", "questions"):
            assert db_run("get", f"SELECT COUNT(*) AS total FROM {table}")["total"] == 0, table

    def test_delete_missing(self, admin_client):
        assert admin_client.delete("/api/classes/999").status_code == 404
