"""
Exception types for build-a-bot.
"""


class BuildError(Exception):
    """Base class for failures that abort a build request."""


class GenerationError(BuildError):
    """The language model call failed or returned an unusable payload."""


class BuildTimeoutError(BuildError):
    """The build request did not finish within its deadline."""


class MaxRetriesExceeded(Exception):
    """The marketplace kept throttling after every retry attempt."""

    def __init__(self, url: str, attempts: int):
        super().__init__(f"Max retries reached ({attempts}) for {url}")
        self.url = url
        self.attempts = attempts
