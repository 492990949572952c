import os
import uuid

from flask import current_app

from rentify.utils.errors import ApiError

EXTENSION_BY_TYPE = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


def _size_of(storage) -> int:
    stream = storage.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def _extension_for(storage) -> str:
    _, ext = os.path.splitext(storage.filename or "")
    ext = (ext or "").lower()
    if ext and len(ext) <= 6:
        return ext
    return EXTENSION_BY_TYPE.get(storage.mimetype, ".img")


def validate_images(files: list) -> None:
    """Checks count, type and size of every file before anything is written."""
    max_files = int(current_app.config.get("UPLOAD_MAX_FILES", 10))
    max_bytes = int(current_app.config.get("UPLOAD_MAX_BYTES", 5 * 1024 * 1024))

    if not files:
        raise ApiError("No files provided in the 'images' field", 400)
    if len(files) > max_files:
        raise ApiError(f"Maximum {max_files} files allowed per request", 400)

    for f in files:
        name = f.filename or "file"
        if not (f.mimetype or "").startswith("image/"):
            raise ApiError(f"File {name} is not an image", 400)
        if _size_of(f) > max_bytes:
            raise ApiError(f"File {name} is too large. Maximum size is {max_bytes // (1024 * 1024)}MB", 400)


def save_images(files: list, user_id: int, base_url: str) -> list[str]:
    validate_images(files)

    upload_dir = current_app.config.get("UPLOADS_DIR")
    if not upload_dir:
        raise ApiError("Upload storage is not configured", 500)
    os.makedirs(upload_dir, exist_ok=True)

    urls = []
    for f in files:
        filename = f"{user_id}_{uuid.uuid4().hex}{_extension_for(f)}"
        f.save(os.path.join(upload_dir, filename))
        urls.append(f"{base_url.rstrip('/')}/uploads/{filename}")

    current_app.logger.info("Stored %s image(s) for profile %s", len(urls), user_id)
    return urls
