"""Question management, public answer checking and bulk import."""

import io

import pandas as pd


class TestQuestionEndpoints:
    def test_public_list_hides_correct_answer(self, client, make_question):
        question = make_question()
        questions = client.get(f"/api/lessons/{question['lesson_id']}/questions").get_json()
        assert len(questions) == 1
        assert "correct_answer" not in questions[0]
        assert questions[0]["option_b"] == "القاهرة"

    def test_manage_list_includes_correct_answer(self, admin_client, make_question):
        question = make_question()
        questions = admin_client.get(f"/api/lessons/{question['lesson_id']}/questions/manage").get_json()
        assert questions[0]["correct_answer"] == "B"

    def test_manage_requires_login(self, client, make_question):
        question = make_question()
        assert client.get(f"/api/lessons/{question['lesson_id']}/questions/manage").status_code == 401

    def test_display_order_appends(self, make_lesson, make_question):
        lesson = make_lesson()
        first = make_question(lesson_id=lesson["id"])
        second = make_question(lesson_id=lesson["id"])
        assert (first["display_order"], second["display_order"]) == (0, 1)

    def test_correct_answer_is_normalized(self, make_question):
        assert make_question(correct_answer=" c ")["correct_answer"] == "C"

    def test_invalid_correct_answer(self, admin_client, make_lesson):
        response = admin_client.post(f"/api/lessons/{make_lesson()['id']}/questions", json={
            "question_text": "سؤال", "option_a": "1", "option_b": "2", "option_c": "3", "option_d": "4",
            "correct_answer": "E",
        })
        assert response.status_code == 400
        assert response.get_json()["code"] == "INVALID_CORRECT_ANSWER"

    def test_missing_option(self, admin_client, make_lesson):
        response = admin_client.post(f"/api/lessons/{make_lesson()['id']}/questions", json={
            "question_text": "سؤال", "option_a": "1", "option_b": "2", "option_c": "3", "correct_answer": "A",
        })
        assert response.status_code == 400
        assert response.get_json()["code"] == "OPTIONS_REQUIRED"

    def test_unknown_lesson(self, admin_client):
        response = admin_client.post("/api/lessons/999/questions", json={
            "question_text": "سؤال", "option_a": "1", "option_b": "2", "option_c": "3", "option_d": "4",
            "correct_answer": "A",
        })
        assert response.status_code == 404
        assert response.get_json()["code"] == "LESSON_NOT_FOUND"

    def test_update_keeps_display_order(self, admin_client, make_lesson, make_question):
        lesson = make_lesson()
        make_question(lesson_id=lesson["id"])
        question = make_question(lesson_id=lesson["id"])
        response = admin_client.put(f"/api/lessons/{lesson['id']}/questions/{question['id']}", json={
            "question_text": "ما أكبر مدينة؟", "option_a": "1", "option_b": "2", "option_c": "3", "option_d": "4",
            "correct_answer": "D",
        })
        assert response.status_code == 200
        updated = response.get_json()
        assert updated["correct_answer"] == "D"
        assert updated["display_order"] == 1

    def test_question_scoped_to_lesson(self, admin_client, make_lesson, make_question):
        question = make_question()
        other_lesson = make_lesson("درس آخر", unit_id=None)
        response = admin_client.delete(f"/api/lessons/{other_lesson['id']}/questions/{question['id']}")
        assert response.status_code == 404

    def test_delete(self, client, admin_client, make_question):
        question = make_question()
        url = f"/api/lessons/{question['lesson_id']}/questions"
        assert admin_client.delete(f"{url}/{question['id']}").status_code == 200
        assert client.get(url).get_json() == []


class TestCheckAnswer:
    def _check(self, client, question, answer):
        return client.post(
            f"/api/lessons/{question['lesson_id']}/questions/{question['id']}/check",
            json={"answer": answer},
        )

    def test_correct_answer(self, client, make_question):
        response = self._check(client, make_question(correct_answer="B"), "B")
        assert response.status_code == 200
        assert response.get_json() == {"correct": True, "correctAnswer": "B"}

    def test_wrong_answer_reveals_key(self, client, make_question):
        response = self._check(client, make_question(correct_answer="B"), "A")
        assert response.get_json() == {"correct": False, "correctAnswer": "B"}

    def test_lowercase_answer(self, client, make_question):
        assert self._check(client, make_question(correct_answer="B"), "b").get_json()["correct"] is True

    def test_missing_answer(self, client, make_question):
        response = client.post(
            f"/api/lessons/{make_question()['lesson_id']}/questions/1/check", json={},
        )
        assert response.status_code == 400
        assert response.get_json()["code"] == "ANSWER_REQUIRED"

    def test_invalid_letter(self, client, make_question):
        response = self._check(client, make_question(), "Z")
        assert response.status_code == 400
        assert response.get_json()["code"] == "INVALID_ANSWER"

    def test_unknown_question(self, client, make_lesson):
        lesson = make_lesson()
        response = client.post(f"/api/lessons/{lesson['id']}/questions/999/check", json={"answer": "A"})
        assert response.status_code == 404
        assert response.get_json()["code"] == "QUESTION_NOT_FOUND"


class TestImport:
    ROWS = [
        {"question_text": "سؤال أول", "option_a": "1", "option_b": "2", "option_c": "3", "option_d": "4",
         "correct_answer": "a"},
        {"question_text": "سؤال ثان", "option_a": "1", "option_b": "2", "option_c": "3", "option_d": "4",
         "correct_answer": "X"},
        {"question_text": "", "option_a": "1", "option_b": "2", "option_c": "3", "option_d": "4",
         "correct_answer": "B"},
    ]

    def _post(self, client, lesson_id, payload, filename):
        return client.post(
            f"/api/lessons/{lesson_id}/questions/import",
            data={"file": (io.BytesIO(payload), filename)},
            content_type="multipart/form-data",
        )

    def test_import_csv_reports_bad_rows(self, admin_client, make_lesson):
        lesson = make_lesson()
        payload = pd.DataFrame(self.ROWS).to_csv(index=False).encode("utf-8")

        response = self._post(admin_client, lesson["id"], payload, "questions.csv")
        assert response.status_code == 200
        data = response.get_json()
        assert data["imported"] == 1
        assert [error["row"] for error in data["errors"]] == [3, 4]
        assert data["errors"][0]["code"] == "INVALID_CORRECT_ANSWER"
        assert data["errors"][1]["code"] == "QUESTION_TEXT_REQUIRED"

        questions = admin_client.get(f"/api/lessons/{lesson['id']}/questions/manage").get_json()
        assert questions[0]["correct_answer"] == "A"

    def test_import_xlsx(self, admin_client, make_lesson):
        lesson = make_lesson()
        buffer = io.BytesIO()
        pd.DataFrame(self.ROWS[:1]).to_excel(buffer, index=False)

        response = self._post(admin_client, lesson["id"], buffer.getvalue(), "questions.xlsx")
        assert response.status_code == 200
        assert response.get_json() == {"imported": 1, "errors": []}

    def test_missing_columns(self, admin_client, make_lesson):
        payload = "question_text,option_a\nسؤال,1\n".encode("utf-8")
        response = self._post(admin_client, make_lesson()["id"], payload, "questions.csv")
        assert response.status_code == 400
        assert response.get_json()["code"] == "INVALID_IMPORT_FILE"

    def test_wrong_extension(self, admin_client, make_lesson):
        response = self._post(admin_client, make_lesson()["id"], b"data", "questions.txt")
        assert response.status_code == 400
        assert response.get_json()["code"] == "INVALID_FILE_TYPE"

    def test_bad_display_order_is_a_row_error(self, admin_client, make_lesson):
        rows = [dict(self.ROWS[0], display_order=value) for value in ("--5", "²", str(2**70), "4")]
        payload = pd.DataFrame(rows).to_csv(index=False).encode("utf-8")

        response = self._post(admin_client, make_lesson()["id"], payload, "questions.csv")
        assert response.status_code == 200
        data = response.get_json()
        assert data["imported"] == 1
        assert [error["row"] for error in data["errors"]] == [2, 3, 4]
        assert {error["code"] for error in data["errors"]} == {"INVALID_DISPLAY_ORDER"}
