import pytest

from edu_portal.database import database
from edu_portal.main import create_app

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "TestPassword123!"


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "APP_ENV": "testing",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
        "WTF_CSRF_ENABLED": False,
        "ADMIN_USERNAME": ADMIN_USERNAME,
        "ADMIN_PASSWORD": ADMIN_PASSWORD,
        "CLOUDINARY_CLOUD_NAME": None,
        "CLOUDINARY_API_KEY": None,
        "CLOUDINARY_API_SECRET": None,
        "CLOUDINARY_URL": None,
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    client = app.test_client()
    response = client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return client


@pytest.fixture
def db_run(app):
    """Run ``database`` calls inside an application context."""
    def _call(method, sql, params=()):
        with app.app_context():
            return getattr(database, method)(sql, params)
    return _call


@pytest.fixture
def make_class(admin_client):
    def _make(name="الصف الأول", name_en="Grade One"):
        response = admin_client.post("/api/classes", json={"name": name, "name_en": name_en})
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _make


@pytest.fixture
def make_unit(admin_client, make_class):
    def _make(title="الوحدة الأولى", class_id=None, title_en=None):
        if class_id is None:
            class_id = make_class()["id"]
        response = admin_client.post("/api/units", json={"title": title, "title_en": title_en, "class_id": class_id})
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _make


@pytest.fixture
def make_lesson(admin_client, make_unit):
    def _make(title="الدرس الأول", unit_id=None, **extra):
        if unit_id is None:
            unit_id = make_unit()["id"]
        payload = {"title": title, "unit_id": unit_id, "content": "محتوى الدرس"}
        payload.update(extra)
        response = admin_client.post("/api/lessons", json=payload)
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _make


@pytest.fixture
def make_question(admin_client, make_lesson):
    def _make(lesson_id=None, correct_answer="B", **extra):
        if lesson_id is None:
            lesson_id = make_lesson()["id"]
        payload = {
            "question_text": "ما عاصمة مصر؟",
            "option_a": "الإسكندرية",
            "option_b": "القاهرة",
            "option_c": "أسوان",
            "option_d": "الأقصر",
            "correct_answer": correct_answer,
        }
        payload.update(extra)
        response = admin_client.post(f"/api/lessons/{lesson_id}/questions", json=payload)
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _make
