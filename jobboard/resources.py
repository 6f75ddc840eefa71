from __future__ import annotations

from typing import Any

from .client import ApiClient
from .constants import LOGIN_PATH
from .errors import UnknownClientError
from .pagination import Page, clean_params, extract_categories, iter_pages, merge_categories
from .validation import UploadedFile, validate_application, validate_registration

JOB_APPROVAL_STATUSES = {"pending", "approved", "rejected"}
APPLICATION_STATUSES = {"pending", "reviewed", "accepted", "rejected"}
EXPORT_FORMATS = {"csv", "json"}
SCREENING_QUESTION_TYPES = {"text", "multiple_choice", "yes_no"}
PROFILE_SECTIONS = {
    "skills": "skills",
    "education": "education",
    "work_history": "work-history",
    "social_links": "social-links",
    "portfolio": "portfolio",
}


def _require_choice(name: str, value: str, choices: set[str]) -> str:
    if value not in choices:
        raise ValueError(f"{name} must be one of {sorted(choices)}, got {value!r}.")
    return value


class _Resource:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def _get(self, path: str, **kwargs):
        return await self._client.fetch("GET", path, **kwargs)

    async def _post(self, path: str, **kwargs):
        return await self._client.fetch("POST", path, **kwargs)

    async def _put(self, path: str, **kwargs):
        return await self._client.fetch("PUT", path, **kwargs)

    async def _patch(self, path: str, **kwargs):
        return await self._client.fetch("PATCH", path, **kwargs)

    async def _delete(self, path: str, **kwargs):
        return await self._client.fetch("DELETE", path, **kwargs)


class AuthAPI(_Resource):
    async def register(
        self,
        *,
        username: str,
        email: str,
        password: str,
        password2: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: str | None = None,
    ) -> dict:
        validate_registration(
            username=username,
            email=email,
            password=password,
            password2=password2,
            first_name=first_name,
            last_name=last_name,
        ).raise_for_errors()
        payload = clean_params(
            {
                "username": username,
                "email": email,
                "password": password,
                "password2": password2,
                "first_name": first_name,
                "last_name": last_name,
                "role": role,
            }
        )
        return await self._post(
            "/auth/register/", json=payload, authenticated=False, refresh_on_401=False
        )

    async def login(self, username: str, password: str) -> dict:
        """Log in and hold the returned credential pair; returns the user."""
        payload = await self._post(
            LOGIN_PATH,
            json={"username": username, "password": password},
            authenticated=False,
            refresh_on_401=False,
        )
        if not isinstance(payload, dict):
            raise UnknownClientError("Received an invalid login response from the server.")
        access = payload.get("access")
        refresh = payload.get("refresh")
        if not isinstance(access, str) or not access:
            raise UnknownClientError("Login response missing access token.")
        if not isinstance(refresh, str) or not refresh:
            raise UnknownClientError("Login response missing refresh token.")

        await self._client.set_credentials(access, refresh)
        return payload.get("user") or {}

    async def logout(self) -> None:
        await self._client.clear_credentials()

    async def current_user(self) -> dict:
        return await self._get("/auth/me/")

    async def update_current_user(
        self,
        data: dict,
        *,
        profile_picture: tuple[str, bytes, str] | None = None,
    ) -> dict:
        fields = clean_params(data)
        if profile_picture is None:
            return await self._patch("/auth/me/update/", json=fields)
        return await self._patch(
            "/auth/me/update/",
            data={key: str(value) for key, value in fields.items()},
            files={"profile_picture": profile_picture},
        )

    async def change_password(self, old_password: str, new_password: str, confirm_password: str):
        return await self._post(
            "/auth/change-password/",
            json={
                "old_password": old_password,
                "new_password": new_password,
                "new_password2": confirm_password,
            },
        )

    async def request_password_reset(self, email: str):
        return await self._post(
            "/auth/password-reset/",
            json={"email": email},
            authenticated=False,
        )

    async def confirm_password_reset(self, token: str, new_password: str, new_password2: str):
        return await self._post(
            "/auth/password-reset/confirm/",
            json={"token": token, "new_password": new_password, "new_password2": new_password2},
            authenticated=False,
        )


class JobsAPI(_Resource):
    async def list(self, filters: dict | None = None) -> Page:
        params = clean_params(filters, drop_false=True)
        return Page.from_payload(await self._get("/jobs/", params=params))

    async def get(self, job_id: str) -> dict:
        return await self._get(f"/jobs/{job_id}/")

    async def create(self, job: dict) -> dict:
        return await self._post("/jobs/", json=job)

    async def update(self, job_id: str, job: dict) -> dict:
        return await self._patch(f"/jobs/{job_id}/", json=job)

    async def delete(self, job_id: str) -> None:
        await self._delete(f"/jobs/{job_id}/")

    async def search(self, query: str, filters: dict | None = None) -> Page:
        params = clean_params({"q": query, **(filters or {})})
        return Page.from_payload(await self._get("/jobs/search/", params=params))

    async def save_search(self, query: str, filters: dict[str, str], name: str | None = None):
        payload = clean_params({"query": query, "filters": filters, "name": name})
        return await self._post("/jobs/search/save/", json=payload)

    async def recommendations(self, limit: int = 4) -> Page:
        # Some deployments serve this outside the versioned prefix.
        try:
            payload = await self._get(
                "/api/jobs/recommendations/", params={"limit": limit}, versioned=False
            )
        except UnknownClientError as error:
            if error.status_code != 404:
                raise
            payload = await self._get("/jobs/recommendations/", params={"limit": limit})
        return Page.from_payload(payload)

    async def update_approval(self, job_id: str, approval_status: str) -> dict:
        _require_choice("approval_status", approval_status, JOB_APPROVAL_STATUSES)
        return await self._patch(f"/jobs/{job_id}/", json={"approval_status": approval_status})

    async def categories(self) -> list[dict]:
        return Page.from_payload(await self._get("/jobs/categories/")).results

    async def collect_categories(self, filters: dict | None = None, *, max_pages: int = 5) -> list[dict]:
        """Known categories merged with those seen on job listings."""
        known = await self.categories()
        seen: list[dict] = []
        params = clean_params(filters, drop_false=True)
        async for page in iter_pages(self._client, "/jobs/", params, max_pages=max_pages):
            seen.extend(extract_categories(page.results))
        return merge_categories(known, seen)


class ApplicationsAPI(_Resource):
    async def list(self, filters: dict | None = None) -> Page:
        params = clean_params(filters)
        return Page.from_payload(await self._get("/jobs/applications/", params=params))

    async def get(self, application_id: str) -> dict:
        return await self._get(f"/jobs/applications/{application_id}/")

    async def create(
        self,
        job_id: str,
        cover_letter: str,
        resume: tuple[str, bytes, str],
    ) -> dict:
        filename, body, content_type = resume
        validate_application(
            cover_letter=cover_letter,
            resume=UploadedFile(name=filename, size=len(body), content_type=content_type),
        ).raise_for_errors()
        return await self._post(
            "/jobs/applications/",
            data={"job": job_id, "cover_letter": cover_letter},
            files={"resume": resume},
        )

    async def update_status(self, application_id: str, status: str) -> dict:
        _require_choice("status", status, APPLICATION_STATUSES)
        return await self._patch(f"/jobs/applications/{application_id}/", json={"status": status})

    async def withdraw(self, application_id: str, reason: str = ""):
        return await self._post(
            f"/jobs/applications/{application_id}/withdraw/", json={"reason": reason}
        )


class ProfileAPI(_Resource):
    async def get(self) -> dict:
        return await self._get("/auth/profile/profile/")

    async def dashboard(self) -> dict:
        return await self._get("/auth/profile/dashboard/")

    def _section_path(self, section: str, item_id: str | None = None) -> str:
        if section not in PROFILE_SECTIONS:
            raise ValueError(f"Unknown profile section {section!r}.")
        path = f"/auth/profile/{PROFILE_SECTIONS[section]}/"
        if item_id is not None:
            path += f"{item_id}/"
        return path

    async def add_item(self, section: str, data: dict) -> dict:
        return await self._post(self._section_path(section), json=data)

    async def update_item(self, section: str, item_id: str, data: dict) -> dict:
        return await self._put(self._section_path(section, item_id), json=data)

    async def delete_item(self, section: str, item_id: str) -> None:
        await self._delete(self._section_path(section, item_id))

    async def saved_jobs(self, page: int | None = None, page_size: int | None = None) -> Page:
        params = clean_params({"page": page, "page_size": page_size})
        return Page.from_payload(await self._get("/auth/profile/saved-jobs/", params=params))

    async def save_job(self, job_id: str, notes: str | None = None) -> dict:
        return await self._post(
            "/auth/profile/saved-jobs/save_job/",
            json=clean_params({"job_id": job_id, "notes": notes}),
        )

    async def unsave_job(self, saved_job_id: str) -> None:
        await self._delete(f"/auth/profile/saved-jobs/{saved_job_id}/unsave/")

    async def saved_job_index(self) -> dict[str, str]:
        """Map job id to saved-job id for the first 100 saved jobs."""
        if not self._client.is_authenticated():
            return {}
        page = await self.saved_jobs(page_size=100)
        index: dict[str, str] = {}
        for saved in page.results:
            job = saved.get("job_detail") or saved.get("job")
            if isinstance(job, dict) and job.get("id"):
                index[str(job["id"])] = str(saved["id"])
        return index

    async def preferences(self) -> dict:
        return await self._get("/auth/profile/preferences/")

    async def update_preferences(self, preferences_id: str, data: dict) -> dict:
        return await self._put(f"/auth/profile/preferences/{preferences_id}/", json=data)


class NotificationsAPI(_Resource):
    async def list(self, filters: dict | None = None) -> Page:
        page = Page.from_payload(await self._get("/notifications/", params=clean_params(filters)))
        if page.unread_count is None:
            page.unread_count = 0
        return page

    async def summary(self) -> dict:
        return await self._get("/notifications/summary/")

    async def unread_count(self) -> int:
        payload = await self._get("/notifications/unread_count/")
        count = payload.get("unread_count") if isinstance(payload, dict) else None
        return count if isinstance(count, int) else 0

    async def mark_read(self, notification_id: str) -> None:
        await self._post(f"/notifications/{notification_id}/mark_read/")

    async def mark_all_read(self) -> None:
        await self._post("/notifications/mark_all_read/")


class EmployerAPI(_Resource):
    async def dashboard(self) -> dict:
        return await self._get("/jobs/employer/dashboard/")

    async def job_analytics(self, job_id: str) -> dict:
        return await self._get(f"/jobs/{job_id}/analytics/")

    async def screening_questions(self, job_id: str) -> list[dict]:
        return await self._get(
            "/jobs/applications/screening-questions/", params={"job_id": job_id}
        )

    async def create_screening_question(
        self,
        *,
        job: str,
        question_text: str,
        question_type: str,
        is_required: bool = False,
        order: int = 0,
    ) -> dict:
        _require_choice("question_type", question_type, SCREENING_QUESTION_TYPES)
        return await self._post(
            "/jobs/applications/screening-questions/",
            json={
                "job": job,
                "question_text": question_text,
                "question_type": question_type,
                "is_required": is_required,
                "order": order,
            },
        )

    async def update_screening_question(self, question_id: str, data: dict) -> dict:
        if "question_type" in data:
            _require_choice("question_type", data["question_type"], SCREENING_QUESTION_TYPES)
        return await self._patch(
            f"/jobs/applications/screening-questions/{question_id}/", json=data
        )

    async def delete_screening_question(self, question_id: str) -> None:
        await self._delete(f"/jobs/applications/screening-questions/{question_id}/")

    async def add_application_note(self, application_id: str, content: str, *, is_private: bool = True):
        return await self._post(
            "/jobs/applications/notes/",
            json={"application": application_id, "content": content, "is_private": is_private},
        )

    async def score_application(
        self,
        application_id: str,
        *,
        technical_score: int,
        communication_score: int,
        experience_score: int,
        overall_score: int,
        comments: str | None = None,
    ):
        return await self._post(
            "/jobs/applications/scores/",
            json=clean_params(
                {
                    "application": application_id,
                    "technical_score": technical_score,
                    "communication_score": communication_score,
                    "experience_score": experience_score,
                    "overall_score": overall_score,
                    "comments": comments,
                }
            ),
        )

    async def schedule_interview(
        self,
        application_id: str,
        *,
        interview_type: str,
        scheduled_at: str,
        duration_minutes: int,
        location: str | None = None,
        notes: str | None = None,
    ):
        return await self._post(
            "/jobs/applications/interviews/",
            json=clean_params(
                {
                    "application": application_id,
                    "interview_type": interview_type,
                    "scheduled_at": scheduled_at,
                    "duration_minutes": duration_minutes,
                    "location": location,
                    "notes": notes,
                }
            ),
        )

    async def export_jobs(self, export_format: str = "csv") -> bytes:
        _require_choice("export_format", export_format, EXPORT_FORMATS)
        return await self._get(
            "/export/jobs/", params={"format": export_format}, response_type="bytes"
        )

    async def export_applications(self, export_format: str = "csv", job_id: str | None = None) -> bytes:
        _require_choice("export_format", export_format, EXPORT_FORMATS)
        params = clean_params({"format": export_format, "job": job_id})
        return await self._get("/export/applications/", params=params, response_type="bytes")


class AdminAPI(_Resource):
    async def users(self, filters: dict | None = None) -> Page:
        return Page.from_payload(await self._get("/auth/users/", params=clean_params(filters)))

    async def user(self, user_id: str) -> dict:
        return await self._get(f"/auth/users/{user_id}/")

    async def update_user(self, user_id: str, data: dict) -> dict:
        return await self._put(f"/auth/users/{user_id}/", json=data)

    async def delete_user(self, user_id: str) -> None:
        await self._delete(f"/auth/users/{user_id}/")

    async def statistics(self, scope: str | None = None) -> Any:
        path = "/health/statistics/" if scope is None else f"/health/statistics/{scope}/"
        return await self._get(path, versioned=False)

    async def user_activity(self, user_id: str, days: int = 30) -> Any:
        return await self._get(
            "/health/statistics/user-activity/",
            params={"user_id": user_id, "days": days},
            versioned=False,
        )

    async def audit_logs(self, filters: dict | None = None) -> Page:
        return Page.from_payload(await self._get("/audit/logs/", params=clean_params(filters)))

    async def audit_history(self, content_type: str | None = None, object_id: str | None = None) -> Any:
        params = clean_params({"content_type": content_type, "object_id": object_id})
        return await self._get("/audit/history/", params=params)

    async def object_history(self, content_type: str, object_id: str) -> Any:
        return await self._get(
            "/audit/object-history/",
            params={"content_type": content_type, "object_id": object_id},
        )

    async def search_statistics(self, days: int = 30) -> Any:
        return await self._get("/search/statistics/", params={"days": days})

    async def popular_search_terms(self, limit: int = 20, days: int = 30) -> Any:
        return await self._get("/search/popular-terms/", params={"limit": limit, "days": days})


class SearchAPI(_Resource):
    async def autocomplete(self, query: str, limit: int = 5) -> dict:
        return await self._get("/search/autocomplete/", params={"q": query, "limit": limit})

    async def suggestions(self, query: str) -> Any:
        return await self._get("/search/suggestions/", params={"q": query})

    async def history(self) -> Any:
        return await self._get("/search/history/")

    async def popular_terms(self, limit: int = 20) -> Any:
        return await self._get("/search/popular-terms/", params={"limit": limit})


class FilesAPI(_Resource):
    async def _download(self, path: str, signed: bool):
        if signed:
            return await self._get(path, params={"signed": "true"})
        return await self._get(path, response_type="bytes")

    async def resume(self, application_id: str, *, signed: bool = False):
        return await self._download(f"/core/files/resumes/{application_id}/", signed)

    async def profile_picture(self, user_id: str, *, signed: bool = False):
        return await self._download(f"/core/files/profiles/{user_id}/", signed)


class HealthAPI(_Resource):
    async def _check(self, path: str) -> Any:
        return await self._get(path, versioned=False, authenticated=False)

    async def health(self) -> Any:
        return await self._check("/health/")

    async def liveness(self) -> Any:
        return await self._check("/health/liveness/")

    async def readiness(self) -> Any:
        return await self._check("/health/readiness/")


class JobBoardAPI:
    """Every resource wrapper, sharing one ``ApiClient``."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client
        self.auth = AuthAPI(client)
        self.jobs = JobsAPI(client)
        self.applications = ApplicationsAPI(client)
        self.profile = ProfileAPI(client)
        self.notifications = NotificationsAPI(client)
        self.employer = EmployerAPI(client)
        self.admin = AdminAPI(client)
        self.search = SearchAPI(client)
        self.files = FilesAPI(client)
        self.health = HealthAPI(client)

    async def __aenter__(self) -> "JobBoardAPI":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.client.aclose()
