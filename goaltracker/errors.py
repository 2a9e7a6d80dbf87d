"""Error taxonomy shared by providers, the reconciler and the HTTP layer.

Local analytics never raise these for missing optional data; they return
None / 0 instead. Provider errors carry a user-facing message.
"""

from __future__ import annotations


class GoalTrackerError(Exception):
    """Base class for every error raised on purpose by goaltracker."""

    message = "Something went wrong"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)

    @property
    def user_message(self) -> str:
        return str(self)


class InvalidInput(GoalTrackerError):
    message = "Invalid input"


class ProviderError(GoalTrackerError):
    """A remote collaborator failed. Never leaves local data half-written."""


class Unauthenticated(ProviderError):
    message = "Not authenticated with GitHub"


class RateLimited(ProviderError):
    message = "GitHub API rate limit exceeded"


class NotFound(ProviderError):
    message = "Repository not found"


class NetworkError(ProviderError):
    message = "Network error"


class ParsingFailed(ProviderError):
    message = "Failed to parse provider response"


class StatisticsNotReady(GoalTrackerError):
    """Commit statistics were still being computed after every retry."""

    message = "GitHub is still computing statistics for this repository"


class MissingRecord(GoalTrackerError):
    """A referenced goal, book, repository or project is not in the store."""

    message = "Record not found"
