from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from urllib.parse import urljoin, urlparse

from .errors import ValidationFailedError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
SPECIAL_CHARS_RE = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")
DANGEROUS_FILENAME_RE = re.compile(r"[<>:\"|?*\x00-\x1f]")
JAVASCRIPT_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)
EVENT_HANDLER_RE = re.compile(r"on\w+=", re.IGNORECASE)

JOB_TYPES = {"full-time", "part-time", "contract", "internship", "freelance"}
RESUME_CONTENT_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
RESUME_EXTENSIONS = {"pdf", "doc", "docx"}
MAX_UPLOAD_BYTES = 5 * 1024 * 1024


@dataclass
class ValidationResult:
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise ValidationFailedError(self.errors)


@dataclass
class UploadedFile:
    name: str
    size: int
    content_type: str = ""

    @property
    def extension(self) -> str:
        _, dot, extension = self.name.rpartition(".")
        return extension.lower() if dot else ""


def sanitize_input(value) -> str:
    if not isinstance(value, str):
        return ""
    cleaned = value.strip().replace("<", "").replace(">", "")
    cleaned = JAVASCRIPT_PROTOCOL_RE.sub("", cleaned)
    return EVENT_HANDLER_RE.sub("", cleaned)


def sanitize_string(value, max_length: int | None = None) -> str:
    cleaned = sanitize_input(value)
    if max_length and len(cleaned) > max_length:
        cleaned = cleaned[:max_length]
    return cleaned


def escape_html(text: str) -> str:
    return html.escape(text, quote=True).replace("&#x27;", "&#039;")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def validate_password_strength(password: str) -> ValidationResult:
    problems: list[str] = []
    if len(password) < 8:
        problems.append("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        problems.append("Password must contain at least one number")
    if not SPECIAL_CHARS_RE.search(password):
        problems.append("Password must contain at least one special character")
    return ValidationResult({"password": problems} if problems else {})


def validate_file(
    upload: UploadedFile,
    *,
    max_size: int = MAX_UPLOAD_BYTES,
    allowed_types: set[str] | None = None,
    allowed_extensions: set[str] | None = None,
) -> str | None:
    """Return an error message for an unacceptable upload, ``None`` otherwise."""
    if upload.size > max_size:
        return f"File size exceeds {max_size / (1024 * 1024):g}MB limit"
    if allowed_types and upload.content_type not in allowed_types:
        return f"File type {upload.content_type} is not allowed"
    if allowed_extensions and upload.extension not in allowed_extensions:
        return f"File extension .{upload.extension} is not allowed"
    if DANGEROUS_FILENAME_RE.search(upload.name):
        return "File name contains invalid characters"
    return None


def validate_registration(
    *,
    username: str,
    email: str,
    password: str,
    password2: str,
    first_name: str | None = None,
    last_name: str | None = None,
) -> ValidationResult:
    errors: dict[str, list[str]] = {}

    if not username or not username.strip():
        errors["username"] = ["Username is required"]
    elif len(username) < 3:
        errors["username"] = ["Username must be at least 3 characters long"]
    elif len(username) > 30:
        errors["username"] = ["Username must be less than 30 characters"]
    elif not USERNAME_RE.match(username):
        errors["username"] = ["Username can only contain letters, numbers, and underscores"]

    if not email or not email.strip():
        errors["email"] = ["Email is required"]
    elif not is_valid_email(email):
        errors["email"] = ["Please enter a valid email address"]

    if not password:
        errors["password"] = ["Password is required"]
    elif len(password) < 8:
        errors["password"] = ["Password must be at least 8 characters long"]

    if not password2:
        errors["password2"] = ["Please confirm your password"]
    elif password != password2:
        errors["password2"] = ["Passwords do not match"]

    if first_name and len(first_name) > 50:
        errors["first_name"] = ["First name must be less than 50 characters"]
    if last_name and len(last_name) > 50:
        errors["last_name"] = ["Last name must be less than 50 characters"]

    return ValidationResult(errors)


def validate_application(*, cover_letter: str, resume: UploadedFile | None) -> ValidationResult:
    errors: dict[str, list[str]] = {}

    if not cover_letter or not cover_letter.strip():
        errors["cover_letter"] = ["Cover letter is required"]
    elif len(cover_letter) < 50:
        errors["cover_letter"] = ["Cover letter must be at least 50 characters long"]
    elif len(cover_letter) > 5000:
        errors["cover_letter"] = ["Cover letter must be less than 5000 characters"]

    if resume is None:
        errors["resume"] = ["Resume is required"]
    else:
        if resume.size > MAX_UPLOAD_BYTES:
            errors["resume"] = ["Resume file size must be less than 5MB"]
        if (
            resume.content_type not in RESUME_CONTENT_TYPES
            and resume.extension not in RESUME_EXTENSIONS
        ):
            errors["resume"] = ["Resume must be a PDF, DOC, or DOCX file"]

    return ValidationResult(errors)


def _parse_salary(value) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def validate_job(
    *,
    title: str,
    description: str,
    location: str,
    job_type: str,
    salary_min=None,
    salary_max=None,
) -> ValidationResult:
    errors: dict[str, list[str]] = {}

    if not title or not title.strip():
        errors["title"] = ["Job title is required"]
    elif len(title) > 200:
        errors["title"] = ["Job title must be less than 200 characters"]

    if not description or not description.strip():
        errors["description"] = ["Job description is required"]
    elif len(description) < 50:
        errors["description"] = ["Job description must be at least 50 characters long"]

    if not location or not location.strip():
        errors["location"] = ["Location is required"]

    if job_type not in JOB_TYPES:
        errors["job_type"] = ["Please select a valid job type"]

    minimum = _parse_salary(salary_min)
    maximum = _parse_salary(salary_max)
    if minimum is not None and maximum is not None and minimum > maximum:
        errors["salary_max"] = ["Maximum salary must be greater than minimum salary"]

    return ValidationResult(errors)


def is_safe_redirect(url: str, origin: str) -> bool:
    """True when ``url`` resolves to the same origin as ``origin``."""
    try:
        target = urlparse(urljoin(origin.rstrip("/") + "/", url))
        base = urlparse(origin)
    except ValueError:
        return False
    return (target.scheme, target.netloc) == (base.scheme, base.netloc)
