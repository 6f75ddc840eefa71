from __future__ import annotations

import logging

HTTP_METHODS = {
    "get",
    "post",
    "put",
    "patch",
    "delete",
    "options",
    "head",
}

LOGGER = logging.getLogger("jobboard.api")
APP_VERSION = "0.1.0"

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_API_VERSION = "v1"
# Generous so a cold-starting backend can still answer.
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_RETRY_AFTER_SECONDS = 60

LOGIN_PATH = "/auth/login/"
REFRESH_PATH = "/auth/refresh/"
CSRF_HEADER = "X-CSRFToken"

MAX_LOGGED_BODY_CHARS = 1000
