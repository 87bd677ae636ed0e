"""Exception hierarchy for repoinit."""

from typing import Any, Optional


class RepoInitError(Exception):
    """Base exception for repoinit-related errors."""
    pass


class ConfigurationError(RepoInitError):
    """Raised when there are configuration-related issues."""
    pass


class ParameterStoreError(RepoInitError):
    """Raised when there are AWS Parameter Store-related issues."""
    pass


class PlaceholderError(RepoInitError):
    """Raised when placeholder substitution fails."""
    pass


class LicenseError(RepoInitError):
    """Raised when a license cannot be selected or installed."""
    pass


class GitError(RepoInitError):
    """Raised when there are Git-related issues."""
    pass


class GitHubError(RepoInitError):
    """Raised when there are GitHub API-related issues."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload
