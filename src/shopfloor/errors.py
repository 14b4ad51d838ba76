"""Domain errors.

Learn: Two families. Auth errors are expected rejections (wrong
password, taken username) and are answered with a message, never a
crash. Storage errors come from the persistence layer and are reported
to whoever triggered the write, never broadcast.
"""


class AuthError(Exception):
    """Base class for credential verification failures."""

    code = "auth_error"


class AlreadyRegistered(AuthError):
    code = "already_registered"


class NotFound(AuthError):
    code = "not_found"


class BadCredential(AuthError):
    code = "bad_credential"


class StorageError(Exception):
    """Base class for persistence failures."""

    code = "storage_error"


class StorageUnavailable(StorageError):
    """Store unreachable or the call timed out."""

    code = "storage_unavailable"


class StorageRejected(StorageError):
    """Store refused the write (constraint or data error)."""

    code = "storage_rejected"


class SavedNotBroadcast(StorageUnavailable):
    """The write landed but the snapshot read after it failed.

    Carries the saved record so the caller can confirm it instead of
    resubmitting.
    """

    code = "saved_not_broadcast"

    def __init__(self, message: str, saved):
        super().__init__(message)
        self.saved = saved


class LoginRequired(Exception):
    """Raised by the session gate; turned into a redirect to /login."""
