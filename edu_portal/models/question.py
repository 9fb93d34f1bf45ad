# edu_portal/models/question.py
from edu_portal.extensions import db

ANSWER_LETTERS = ("A", "B", "C", "D")


class Question(db.Model):
    __tablename__ = "questions"

    id = db.Column(db.Integer, primary_key=True)
    lesson_id = db.Column(db.Integer, db.ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    question_text = db.Column(db.Text, nullable=False)
    option_a = db.Column(db.Text, nullable=False)
    option_b = db.Column(db.Text, nullable=False)
    option_c = db.Column(db.Text, nullable=False)
    option_d = db.Column(db.Text, nullable=False)
    # Single letter, never included in the public question listing
    correct_answer = db.Column(db.String(1), nullable=False)
    display_order = db.Column(db.Integer, nullable=False, server_default="0")
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    lesson = db.relationship("Lesson", back_populates="questions", lazy=True)

    def __repr__(self):
        text_preview = self.question_text[:30] + "..." if len(self.question_text) > 30 else self.question_text
        return f"<Question {self.id}: {text_preview}>"
