from edu_portal.models.admin import Admin
from edu_portal.models.curriculum import SchoolClass, Unit, Lesson, Video, Image
from edu_portal.models.question import Question

__all__ = ["Admin", "SchoolClass", "Unit", "Lesson", "Video", "Image", "Question"]
