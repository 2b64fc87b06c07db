"""Error taxonomy for the credential lifecycle.

Every failure the manager surfaces is one of these, so the tool layer can
tell the agent whether running authorization again will help.
"""


class AuthError(Exception):
    """Base class for credential lifecycle failures."""

    reauthorization_required = False
    hint = ""

    def __init__(
        self,
        message: str = "",
        hint: str | None = None,
        reauthorization_required: bool | None = None,
    ) -> None:
        super().__init__(message)
        if hint is not None:
            self.hint = hint
        if reauthorization_required is not None:
            self.reauthorization_required = reauthorization_required

    @property
    def user_message(self) -> str:
        """Human-readable description suitable for a tool result."""
        message = f"{self.__class__.__name__}: {self}"
        if self.hint:
            message = f"{message} {self.hint}"
        return message


class AuthorizationFailed(AuthError):
    """Interactive consent did not complete or the code exchange was rejected."""

    reauthorization_required = True
    hint = "Invoke the tool again to restart Google sign-in."


class RefreshFailed(AuthError):
    """The refresh token was rejected (revoked or expired)."""

    reauthorization_required = True
    hint = "The next request will open Google sign-in."


class StorageError(AuthError):
    """Persisted credentials are unreadable or corrupt."""

    hint = "The credential file will be replaced on the next sign-in."


class TransientNetworkError(AuthError):
    """The token endpoint could not be reached."""

    hint = "Check the network connection and try again."
