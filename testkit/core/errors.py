"""Error types raised by the harness, the GitOps engine and providers."""

from typing import Optional, Sequence

from .logging import redact_sensitive

# Upper bound on raw payload characters embedded in an error message
PAYLOAD_PREVIEW = 2000


class TestkitError(Exception):
    """Base class for every error raised by testkit."""

    # Keep pytest from collecting this (and subclasses) as a test class
    __test__ = False


class PreconditionError(TestkitError):
    """Required configuration or credential is missing.

    Raised before any external command or API call is attempted.
    """


class ChangeSetError(PreconditionError):
    """A change-set or one of its files is malformed."""


class CommandError(TestkitError):
    """An external command exited non-zero.

    The message always carries the combined stdout/stderr so a failure can be
    diagnosed from the test log alone. Credentials in the command line are
    redacted.
    """

    def __init__(self, command: Sequence[str], returncode: Optional[int], output: str):
        self.command = [redact_sensitive(str(arg)) for arg in command]
        self.returncode = returncode
        self.output = redact_sensitive(output or "")
        super().__init__(
            f"command failed with exit status {returncode}: {' '.join(self.command)}"
            f"\n\n{self.output}"
        )


class GitHubAPIError(TestkitError):
    """The GitHub API returned a non-2xx response or the transport failed."""

    def __init__(self, operation: str, message: str, status_code: Optional[int] = None, body: str = ""):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        detail = f"{operation}: {message}"
        if status_code is not None:
            detail = f"{operation}: HTTP {status_code}: {message}"
        if body:
            detail += f"\n\n{body[:PAYLOAD_PREVIEW]}"
        super().__init__(detail)


class DecodeError(TestkitError):
    """An external system answered with an unexpected shape."""

    def __init__(self, message: str, payload: object = None):
        self.payload = payload
        if payload is not None:
            message = f"{message}\n\nraw payload:\n{str(payload)[:PAYLOAD_PREVIEW]}"
        super().__init__(message)


class CommandOutputError(DecodeError):
    """CLI output could not be interpreted."""


class InvalidTagError(DecodeError):
    """A repository tag is not a valid version."""


class NotFoundError(TestkitError):
    """Something that was asked for does not exist."""


class ProviderNotFoundError(NotFoundError):
    """No active provider implements the requested capability."""

    def __init__(self, capability: str):
        self.capability = capability
        super().__init__(f"no {capability} found among the active providers")


class ResourceNotFoundError(NotFoundError):
    """No matching remote resource exists."""


class ResolutionError(TestkitError):
    """Capable providers exist but none of them supplied the resource."""

    def __init__(self, kind: str, failures: Sequence[tuple]):
        self.kind = kind
        self.failures = list(failures)
        lines = [f"unable to get {kind}:"]
        for provider, err in self.failures:
            lines.append(f"  {provider}: {err}")
        super().__init__("\n".join(lines))


class HarnessSetupError(TestkitError):
    """The harness could not set up its providers."""


class HarnessStateError(TestkitError):
    """The harness was used in a state that does not allow the operation."""


class CleanupError(TestkitError):
    """A provider failed to release one or more resources."""

    def __init__(self, provider: str, failures: Sequence[str]):
        self.provider = provider
        self.failures = list(failures)
        super().__init__(f"{provider} cleanup failed:\n  " + "\n  ".join(self.failures))
