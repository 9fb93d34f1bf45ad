# edu_portal/forms.py
"""Request payload validation.

The API receives JSON, so the forms are built with ``formdata=None`` and the
decoded body passed as ``data``. Each validator tags the field with an error
code; the first failing field (in declaration order) becomes the
``{error, code}`` of the 400 response.
"""

import re

from flask import request
from flask_wtf import FlaskForm
from wtforms import Field, FieldList, Form, FormField, PasswordField, StringField
from wtforms.validators import AnyOf, DataRequired, EqualTo, Length, Regexp, StopValidation, URL, ValidationError

from edu_portal.errors import ValidationFailed
from edu_portal.models.curriculum import POSITIONS, SIZES
from edu_portal.models.question import ANSWER_LETTERS

ARABIC_TEXT = re.compile(r"^[\u0600-\u06FF\s]+$")
ENGLISH_TEXT = re.compile(r"^[A-Za-z0-9\s.,'()&\-]+$")
INTEGER_TEXT = re.compile(r"-?[0-9]+")
# Range of the INTEGER columns on PostgreSQL
MAX_INTEGER = 2**31 - 1
MIN_INTEGER = -(2**31)
DEFAULT_ERROR_CODE = "VALIDATION_ERROR"


# --- Filters --- #

def strip_text(value):
    return value.strip() if isinstance(value, str) else value


def upper_text(value):
    return value.upper() if isinstance(value, str) else value


def lower_text(value):
    return value.lower() if isinstance(value, str) else value


def fallback(default):
    def _fallback(value):
        return default if value is None or value == "" else value
    return _fallback


# --- Validators --- #

class Coded:
    """Run a WTForms validator and tag the field with ``code`` when it fails."""

    def __init__(self, validator, code):
        self.validator = validator
        self.code = code
        self.field_flags = getattr(validator, "field_flags", {})

    def __call__(self, form, field):
        try:
            self.validator(form, field)
        except (ValidationError, StopValidation):
            field.error_code = self.code
            raise


def Required(message, code):
    return Coded(DataRequired(message=message), code)


class OptionalValue:
    """Stop the chain when the JSON value is missing, null or blank."""

    field_flags = {"optional": True}

    def __call__(self, form, field):
        if field.data is None or (isinstance(field.data, str) and not field.data.strip()):
            field.errors[:] = []
            raise StopValidation()


class TextValue:
    def __init__(self, message, code):
        self.message = message
        self.code = code

    def __call__(self, form, field):
        if not isinstance(field.data, str):
            field.error_code = self.code
            raise StopValidation(self.message)


class IntegerValue:
    """Coerce the JSON value to ``int``; booleans and fractions are rejected."""

    def __init__(self, message, code, minimum=MIN_INTEGER, maximum=MAX_INTEGER):
        self.message = message
        self.code = code
        self.minimum = minimum
        self.maximum = maximum

    def __call__(self, form, field):
        value = field.data
        if isinstance(value, bool):
            value = None
        elif isinstance(value, str) and INTEGER_TEXT.fullmatch(value.strip()):
            value = int(value.strip())
        elif isinstance(value, float) and value.is_integer():
            value = int(value)
        elif not isinstance(value, int):
            value = None

        if value is None or not self.minimum <= value <= self.maximum:
            field.error_code = self.code
            raise StopValidation(self.message)
        field.data = value


class ListValue:
    def __init__(self, message, code):
        self.message = message
        self.code = code

    def __call__(self, form, field):
        if field.object_data is not None and not isinstance(field.object_data, (list, tuple)):
            field.error_code = self.code
            raise ValidationError(self.message)


class JSONValueField(Field):
    """Field that keeps the decoded JSON value as is."""


def arabic_title(required_message, required_code):
    return [
        Required(required_message, required_code),
        TextValue("القيمة يجب أن تكون نصاً", "INVALID_TYPE"),
        Coded(Regexp(ARABIC_TEXT, message="يجب أن يحتوي العنوان على أحرف عربية فقط"), "INVALID_CHARACTERS"),
    ]


def english_title():
    return [
        OptionalValue(),
        TextValue("القيمة يجب أن تكون نصاً", "INVALID_TYPE"),
        Coded(Regexp(ENGLISH_TEXT, message="English title may only contain Latin letters, digits and basic punctuation"),
              "INVALID_ENGLISH_CHARACTERS"),
    ]


def _first_field_error(field):
    if isinstance(field, FieldList):
        for error in field.errors:
            if isinstance(error, str):
                return error, getattr(field, "error_code", DEFAULT_ERROR_CODE)
        for entry in field.entries:
            found = _first_field_error(entry)
            if found:
                return found
        return None
    if isinstance(field, FormField):
        return first_error(field.form)
    if field.errors:
        return field.errors[0], getattr(field, "error_code", DEFAULT_ERROR_CODE)
    return None


def first_error(form):
    for field in form:
        found = _first_field_error(field)
        if found:
            return found
    return None


# --- Forms --- #

class ApiForm(FlaskForm):
    class Meta:
        # CSRFProtect covers the whole request; JSON bodies carry no token field
        csrf = False

    @classmethod
    def from_payload(cls, payload):
        if not isinstance(payload, dict):
            raise ValidationFailed("صيغة البيانات غير صالحة", "INVALID_BODY")
        return cls(formdata=None, data=payload)

    @classmethod
    def from_request(cls):
        payload = request.get_json(silent=True)
        return cls.from_payload(payload if payload is not None else {})

    def validate_or_raise(self):
        if not self.validate():
            message, code = first_error(self) or ("بيانات غير صالحة", DEFAULT_ERROR_CODE)
            raise ValidationFailed(message, code)
        return self


class LoginForm(ApiForm):
    username = StringField("اسم المستخدم", filters=[strip_text],
                           validators=[Required("اسم المستخدم وكلمة المرور مطلوبان", "CREDENTIALS_REQUIRED")])
    password = PasswordField("كلمة المرور",
                             validators=[Required("اسم المستخدم وكلمة المرور مطلوبان", "CREDENTIALS_REQUIRED")])


class ChangePasswordForm(ApiForm):
    current_password = PasswordField("كلمة المرور الحالية",
                                     validators=[Required("كلمة المرور الحالية مطلوبة", "CURRENT_PASSWORD_REQUIRED")])
    new_password = PasswordField("كلمة المرور الجديدة", validators=[
        Required("كلمة المرور الجديدة مطلوبة", "NEW_PASSWORD_REQUIRED"),
        TextValue("القيمة يجب أن تكون نصاً", "INVALID_TYPE"),
        Coded(Length(min=8, message="يجب أن تكون كلمة المرور 8 أحرف على الأقل."), "PASSWORD_TOO_SHORT"),
    ])
    confirm_password = PasswordField("تأكيد كلمة المرور", validators=[
        Required("تأكيد كلمة المرور مطلوب", "CONFIRM_PASSWORD_REQUIRED"),
        Coded(EqualTo("new_password", message="كلمتا المرور غير متطابقتين."), "PASSWORD_MISMATCH"),
    ])


class ClassForm(ApiForm):
    name = StringField("اسم الصف", filters=[strip_text], validators=arabic_title("اسم الصف مطلوب", "NAME_REQUIRED"))
    name_en = StringField("Class name", filters=[strip_text], validators=english_title())


class UnitForm(ApiForm):
    title = StringField("عنوان الوحدة", filters=[strip_text],
                        validators=arabic_title("عنوان الوحدة مطلوب", "TITLE_REQUIRED"))
    title_en = StringField("Unit title", filters=[strip_text], validators=english_title())
    class_id = JSONValueField("الصف الدراسي", validators=[
        Required("الصف الدراسي مطلوب", "CLASS_ID_REQUIRED"),
        IntegerValue("معرف الصف الدراسي غير صالح", "INVALID_CLASS_ID", minimum=1),
    ])


class VideoForm(Form):
    video_url = StringField("رابط الفيديو", filters=[strip_text], validators=[
        Required("رابط الفيديو مطلوب", "VIDEO_URL_REQUIRED"),
        TextValue("رابط الفيديو غير صالح", "INVALID_VIDEO_URL"),
        Coded(URL(message="رابط الفيديو غير صالح"), "INVALID_VIDEO_URL"),
    ])
    position = StringField("الموضع", default="bottom", filters=[strip_text, lower_text, fallback("bottom")],
                           validators=[Coded(AnyOf(POSITIONS, message="موضع الفيديو غير صالح"), "INVALID_POSITION")])
    size = StringField("الحجم", default="large", filters=[strip_text, lower_text, fallback("large")],
                       validators=[Coded(AnyOf(SIZES, message="حجم الفيديو غير صالح"), "INVALID_SIZE")])
    explanation = StringField("الشرح", filters=[strip_text], validators=[
        OptionalValue(), TextValue("شرح الفيديو يجب أن يكون نصاً", "INVALID_TYPE"),
    ])
    display_order = JSONValueField("الترتيب", validators=[
        OptionalValue(), IntegerValue("ترتيب العرض يجب أن يكون رقماً صحيحاً", "INVALID_DISPLAY_ORDER"),
    ])


class ImageForm(Form):
    image_path = StringField("رابط الصورة", filters=[strip_text], validators=[
        Required("رابط الصورة مطلوب", "IMAGE_PATH_REQUIRED"),
        TextValue("رابط الصورة غير صالح", "INVALID_IMAGE_PATH"),
        Coded(URL(message="رابط الصورة غير صالح"), "INVALID_IMAGE_PATH"),
    ])
    position = StringField("الموضع", default="bottom", filters=[strip_text, lower_text, fallback("bottom")],
                           validators=[Coded(AnyOf(POSITIONS, message="موضع الصورة غير صالح"), "INVALID_POSITION")])
    size = StringField("الحجم", default="medium", filters=[strip_text, lower_text, fallback("medium")],
                       validators=[Coded(AnyOf(SIZES, message="حجم الصورة غير صالح"), "INVALID_SIZE")])
    caption = StringField("التعليق", filters=[strip_text], validators=[
        OptionalValue(), TextValue("تعليق الصورة يجب أن يكون نصاً", "INVALID_TYPE"),
    ])
    display_order = JSONValueField("الترتيب", validators=[
        OptionalValue(), IntegerValue("ترتيب العرض يجب أن يكون رقماً صحيحاً", "INVALID_DISPLAY_ORDER"),
    ])


MEDIA_KEYS = {
    "videos": ("video_url", "position", "size", "explanation", "display_order"),
    "images": ("image_path", "position", "size", "caption", "display_order"),
}

MEDIA_LIST_ERRORS = {
    "videos": "قائمة الفيديوهات غير صالحة",
    "images": "قائمة الصور غير صالحة",
}


class LessonForm(ApiForm):
    title = StringField("عنوان الدرس", filters=[strip_text],
                        validators=arabic_title("عنوان الدرس مطلوب", "TITLE_REQUIRED"))
    title_en = StringField("Lesson title", filters=[strip_text], validators=english_title())
    unit_id = JSONValueField("الوحدة", validators=[
        Required("الوحدة الدراسية مطلوبة", "UNIT_ID_REQUIRED"),
        IntegerValue("معرف الوحدة غير صالح", "INVALID_UNIT_ID", minimum=1),
    ])
    content = StringField("المحتوى", validators=[
        OptionalValue(), TextValue("محتوى الدرس يجب أن يكون نصاً", "INVALID_TYPE"),
    ])
    videos = FieldList(FormField(VideoForm), validators=[ListValue(MEDIA_LIST_ERRORS["videos"], "INVALID_VIDEOS")])
    images = FieldList(FormField(ImageForm), validators=[ListValue(MEDIA_LIST_ERRORS["images"], "INVALID_IMAGES")])

    @classmethod
    def from_payload(cls, payload):
        if isinstance(payload, dict):
            payload = dict(payload)
            for name, keys in MEDIA_KEYS.items():
                items = payload.get(name)
                if items is not None and not isinstance(items, list):
                    raise ValidationFailed(MEDIA_LIST_ERRORS[name], f"INVALID_{name.upper()}")
                if isinstance(items, list):
                    # Only known keys reach the sub-forms as keyword arguments
                    payload[name] = [
                        {key: item[key] for key in keys if key in item} if isinstance(item, dict) else item
                        for item in items
                    ]
        return super().from_payload(payload)

    def media(self, name):
        """Validated video/image dicts with ``display_order`` defaulting to the list index."""
        items = []
        for index, entry in enumerate(getattr(self, name).entries):
            data = dict(entry.form.data)
            if data.get("display_order") is None:
                data["display_order"] = index
            items.append(data)
        return items


class QuestionForm(ApiForm):
    question_text = StringField("نص السؤال", filters=[strip_text], validators=[
        Required("نص السؤال مطلوب", "QUESTION_TEXT_REQUIRED"),
        TextValue("نص السؤال يجب أن يكون نصاً", "INVALID_TYPE"),
    ])
    option_a = StringField("الخيار أ", filters=[strip_text], validators=[
        Required("جميع الخيارات مطلوبة", "OPTIONS_REQUIRED"), TextValue("الخيار يجب أن يكون نصاً", "INVALID_TYPE"),
    ])
    option_b = StringField("الخيار ب", filters=[strip_text], validators=[
        Required("جميع الخيارات مطلوبة", "OPTIONS_REQUIRED"), TextValue("الخيار يجب أن يكون نصاً", "INVALID_TYPE"),
    ])
    option_c = StringField("الخيار ج", filters=[strip_text], validators=[
        Required("جميع الخيارات مطلوبة", "OPTIONS_REQUIRED"), TextValue("الخيار يجب أن يكون نصاً", "INVALID_TYPE"),
    ])
    option_d = StringField("الخيار د", filters=[strip_text], validators=[
        Required("جميع الخيارات مطلوبة", "OPTIONS_REQUIRED"), TextValue("الخيار يجب أن يكون نصاً", "INVALID_TYPE"),
    ])
    correct_answer = StringField("الإجابة الصحيحة", filters=[strip_text, upper_text], validators=[
        Required("الإجابة الصحيحة مطلوبة", "CORRECT_ANSWER_REQUIRED"),
        Coded(AnyOf(ANSWER_LETTERS, message="الإجابة الصحيحة يجب أن تكون A أو B أو C أو D"), "INVALID_CORRECT_ANSWER"),
    ])
    display_order = JSONValueField("الترتيب", validators=[
        OptionalValue(), IntegerValue("ترتيب العرض يجب أن يكون رقماً صحيحاً", "INVALID_DISPLAY_ORDER"),
    ])


class AnswerForm(ApiForm):
    answer = StringField("الإجابة", filters=[strip_text, upper_text], validators=[
        Required("يجب اختيار إجابة", "ANSWER_REQUIRED"),
        Coded(AnyOf(ANSWER_LETTERS, message="الإجابة يجب أن تكون A أو B أو C أو D"), "INVALID_ANSWER"),
    ])
