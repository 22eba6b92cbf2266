"""
Upload Helper - stores uploaded images on local disk under static/uploads.
"""
import os
import uuid
import logging

from fastapi import HTTPException

logger = logging.getLogger("studio_app")

ALLOWED_IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'webp', 'gif'}
MAX_IMAGE_SIZE = 5 * 1024 * 1024   # 5MB

UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.path.dirname(os.path.dirname(__file__)), 'static', 'uploads'))


def validate_image(filename: str, content: bytes) -> str:
    """Check extension and size. Returns the lowercase extension."""
    ext = os.path.splitext(filename or "")[1].lower().lstrip(".")
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise HTTPException(status_code=400, detail=f"Unsupported image type: .{ext}")
    if len(content) > MAX_IMAGE_SIZE:
        raise HTTPException(status_code=400, detail="Image too large (max 5MB)")
    return ext


def save_file(content: bytes, folder: str, original_filename: str) -> str:
    """Save an image under a random name and return its URL path."""
    ext = validate_image(original_filename, content)
    filename = f"{uuid.uuid4().hex}.{ext}"

    base_dir = os.path.join(UPLOAD_DIR, folder)
    os.makedirs(base_dir, exist_ok=True)
    with open(os.path.join(base_dir, filename), 'wb') as f:
        f.write(content)

    logger.info(f"Saved upload {folder}/{filename}")
    return f"/static/uploads/{folder}/{filename}"


def delete_file(url: str) -> bool:
    """Delete a previously saved upload. Returns False if it was not there."""
    if not url or not url.startswith("/static/uploads/"):
        return False
    file_path = os.path.join(UPLOAD_DIR, url[len("/static/uploads/"):])
    try:
        if os.path.exists(file_path):
            os.remove(file_path)
            return True
    except OSError as e:
        logger.error(f"Local delete failed: {e}")
    return False
