# edu_portal/storage.py
import os
import time
import uuid
import logging

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from werkzeug.utils import secure_filename

from edu_portal.errors import ServiceUnavailable, UpstreamError, ValidationFailed

logger = logging.getLogger(__name__)

# Allowed extensions for lesson image uploads
ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}


def allowed_image_file(filename):
    return ("." in filename and
            filename.rsplit(".", 1)[1].lower() in ALLOWED_IMAGE_EXTENSIONS)


def init_storage(app):
    """Configure Cloudinary once at startup; records whether uploads are possible."""
    cloud_name = app.config.get("CLOUDINARY_CLOUD_NAME")
    api_key = app.config.get("CLOUDINARY_API_KEY")
    api_secret = app.config.get("CLOUDINARY_API_SECRET")

    if all([cloud_name, api_key, api_secret]):
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)
        app.config["IMAGE_STORAGE_READY"] = True
        logger.info("Cloudinary configured from individual variables.")
    elif app.config.get("CLOUDINARY_URL"):
        # The SDK reads CLOUDINARY_URL from the environment on its own
        os.environ.setdefault("CLOUDINARY_URL", app.config["CLOUDINARY_URL"])
        cloudinary.reset_config()
        app.config["IMAGE_STORAGE_READY"] = True
        logger.info("Cloudinary configured from CLOUDINARY_URL.")
    else:
        app.config.setdefault("IMAGE_STORAGE_READY", False)
        logger.warning("Cloudinary credentials are missing; image uploads are disabled.")


def upload_image(file, folder, ready=True):
    """Send an uploaded image to Cloudinary and return its secure URL."""
    if not file or not file.filename:
        raise ValidationFailed("لم يتم اختيار صورة", "IMAGE_REQUIRED")
    if not allowed_image_file(file.filename):
        raise ValidationFailed("نوع ملف الصورة غير مسموح به", "INVALID_FILE_TYPE")
    if not ready:
        raise ServiceUnavailable("خدمة رفع الصور غير مهيأة", "STORAGE_NOT_CONFIGURED")

    original_filename = secure_filename(file.filename)
    # Unique public_id from timestamp and UUID
    public_id = f"{int(time.time())}_{uuid.uuid4().hex[:8]}_{os.path.splitext(original_filename)[0]}"
    logger.debug(f"Uploading {file.filename} to Cloudinary as {folder}/{public_id}")

    try:
        file.stream.seek(0)
        upload_result = cloudinary.uploader.upload(
            file.stream,
            public_id=public_id,
            folder=folder,
            resource_type="image",
        )
    except CloudinaryError as e:
        logger.error(f"Cloudinary upload failed: {e}")
        raise UpstreamError("فشل رفع الصورة", "UPLOAD_FAILED") from e

    if not upload_result or not upload_result.get("secure_url"):
        error_message = (upload_result or {}).get("error", {}).get("message", "No response")
        logger.error(f"Cloudinary upload returned no URL: {error_message}")
        raise UpstreamError("فشل رفع الصورة", "UPLOAD_FAILED")

    logger.info(f"File uploaded successfully to Cloudinary: {upload_result['secure_url']}")
    return upload_result["secure_url"]
