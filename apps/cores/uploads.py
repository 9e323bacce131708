import os
import uuid

from django.conf import settings
from rest_framework.exceptions import ValidationError


# -----------------------------
# ALLOWED FILE EXTENSIONS
# -----------------------------

DOCUMENT_EXTENSIONS = {"pdf", "doc", "docx", "txt", "csv", "xlsx", "ppt", "pptx"}
IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "gif"}
ARCHIVE_EXTENSIONS = {"zip", "rar", "7z", "tar", "gz"}

BLOCKED_EXTENSIONS = {"exe", "sh", "bat", "apk", "msi", "cmd", "com", "scr"}

UPLOAD_KINDS = {
    "projects": DOCUMENT_EXTENSIONS | IMAGE_EXTENSIONS | ARCHIVE_EXTENSIONS,
    "submissions": DOCUMENT_EXTENSIONS | IMAGE_EXTENSIONS | ARCHIVE_EXTENSIONS,
    "messages": DOCUMENT_EXTENSIONS | IMAGE_EXTENSIONS | ARCHIVE_EXTENSIONS,
    "profiles": IMAGE_EXTENSIONS,
    "portfolio": IMAGE_EXTENSIONS | {"pdf"},
    "documents": IMAGE_EXTENSIONS | {"pdf"},
}


def max_upload_bytes():
    return settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024


def file_extension(name):
    return os.path.splitext(name)[1].lower().lstrip(".")


def validate_upload(file, kind):
    if not file:
        raise ValidationError("File is required.")

    if file.size > max_upload_bytes():
        raise ValidationError(
            f"File too large. Max allowed size is {settings.MAX_UPLOAD_SIZE_MB} MB."
        )

    ext = file_extension(file.name)
    if not ext:
        raise ValidationError("File extension missing.")

    if ext in BLOCKED_EXTENSIONS:
        raise ValidationError("This file type is not allowed.")

    if ext not in UPLOAD_KINDS[kind]:
        raise ValidationError(f"Unsupported file format: .{ext}")

    return file


def validate_uploads(files, kind):
    for file in files:
        validate_upload(file, kind)
    return files


# -----------------------------
# STORAGE PATHS
# -----------------------------

def _stored_name(kind, filename):
    """Non-user-controlled path: ``<kind>/<uuid>.<ext>``."""
    ext = file_extension(filename)
    name = uuid.uuid4().hex
    return f"{kind}/{name}.{ext}" if ext else f"{kind}/{name}"


def project_upload_path(instance, filename):
    return _stored_name("projects", filename)


def submission_upload_path(instance, filename):
    return _stored_name("submissions", filename)


def message_upload_path(instance, filename):
    return _stored_name("messages", filename)


def profile_upload_path(instance, filename):
    return _stored_name("profiles", filename)


def portfolio_upload_path(instance, filename):
    return _stored_name("portfolio", filename)


def document_upload_path(instance, filename):
    return _stored_name("documents", filename)
