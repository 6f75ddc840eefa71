from jobboard import client, errors, factory, resources


EXPECTED_EXPORTS = (
    (client, ("ApiClient", "decode_body")),
    (errors, ("ClientError", "ErrorCategory", "RateLimitedError", "AuthenticationExpiredError")),
    (factory, ("create_client", "create_api")),
    (
        resources,
        (
            "AuthAPI",
            "JobsAPI",
            "ApplicationsAPI",
            "ProfileAPI",
            "NotificationsAPI",
            "EmployerAPI",
            "AdminAPI",
            "SearchAPI",
            "FilesAPI",
            "HealthAPI",
            "JobBoardAPI",
        ),
    ),
)


def test_export_surface() -> None:
    missing = [
        f"{module.__name__}.{name}"
        for module, names in EXPECTED_EXPORTS
        for name in names
        if not hasattr(module, name)
    ]
    assert missing == []


def test_every_category_has_an_error_class() -> None:
    categories = {cls.category for cls in errors.ClientError.__subclasses__()}

    assert categories == set(errors.ErrorCategory)
