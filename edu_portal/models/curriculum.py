# edu_portal/models/curriculum.py
"""Table definitions for the class → unit → lesson hierarchy.

Queries go through ``edu_portal.database``; these models only declare the
schema so ``db.create_all()`` builds the same tables on SQLite and
PostgreSQL. Every child row is removed by the database when its parent is
deleted.
"""

from edu_portal.extensions import db

POSITIONS = ("top", "bottom", "side")
SIZES = ("small", "medium", "large", "full")


class SchoolClass(db.Model):
    __tablename__ = "classes"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.Text, nullable=False)
    name_en = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    units = db.relationship("Unit", backref="school_class", lazy=True, cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<SchoolClass {self.name}>"


class Unit(db.Model):
    __tablename__ = "units"
    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    title = db.Column(db.Text, nullable=False)
    title_en = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    lessons = db.relationship("Lesson", backref="unit", lazy=True, cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Unit {self.title}>"


class Lesson(db.Model):
    __tablename__ = "lessons"
    id = db.Column(db.Integer, primary_key=True)
    unit_id = db.Column(db.Integer, db.ForeignKey("units.id", ondelete="CASCADE"), nullable=False, index=True)
    title = db.Column(db.Text, nullable=False)
    title_en = db.Column(db.Text, nullable=True)
    content = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    videos = db.relationship("Video", backref="lesson", lazy=True, cascade="all, delete-orphan", passive_deletes=True)
    images = db.relationship("Image", backref="lesson", lazy=True, cascade="all, delete-orphan", passive_deletes=True)
    questions = db.relationship("Question", back_populates="lesson", lazy=True, cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Lesson {self.title}>"


class Video(db.Model):
    __tablename__ = "videos"
    id = db.Column(db.Integer, primary_key=True)
    lesson_id = db.Column(db.Integer, db.ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    video_url = db.Column(db.Text, nullable=False)
    position = db.Column(db.String(10), nullable=False, server_default="bottom")
    size = db.Column(db.String(10), nullable=False, server_default="large")
    explanation = db.Column(db.Text, nullable=True)
    display_order = db.Column(db.Integer, nullable=False, server_default="0")
    created_at = db.Column(db.DateTime, server_default=db.func.now())


class Image(db.Model):
    __tablename__ = "images"
    id = db.Column(db.Integer, primary_key=True)
    lesson_id = db.Column(db.Integer, db.ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    image_path = db.Column(db.Text, nullable=False)
    position = db.Column(db.String(10), nullable=False, server_default="bottom")
    size = db.Column(db.String(10), nullable=False, server_default="medium")
    caption = db.Column(db.Text, nullable=True)
    display_order = db.Column(db.Integer, nullable=False, server_default="0")
    created_at = db.Column(db.DateTime, server_default=db.func.now())
