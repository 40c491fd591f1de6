"""Exceptions raised by the content services."""


class CmsError(Exception):
    """Base error for every failure reported by the content services."""

    status_code = 500


class NotFoundError(CmsError):
    """The requested record does not exist or is not visible."""

    status_code = 404


class ConflictError(CmsError):
    """The operation clashes with existing data, such as a taken slug."""

    status_code = 409


class ValidationError(CmsError):
    """A request carried invalid input."""

    status_code = 400


class PermissionDenied(CmsError):
    """The caller may not act on a resource owned by someone else."""

    status_code = 403

    def __init__(self, message: str = "没有权限操作他人的资源") -> None:
        super().__init__(message)