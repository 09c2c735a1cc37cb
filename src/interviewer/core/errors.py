class InterviewerError(Exception):
    """Base class for every failure the service reports to a caller."""

    kind = "error"


class InvalidInput(InterviewerError):
    """Malformed or missing request fields. The caller can fix and resend."""

    kind = "invalid_input"


class NotFound(InterviewerError):
    """Unknown session id, or a session that is no longer active."""

    kind = "not_found"


class BackendUnavailable(InterviewerError):
    """Completion or speech backend unreachable or errored. Never retried here."""

    kind = "backend_unavailable"


class EmptyResult(InterviewerError):
    """Backend answered, but with nothing usable."""

    kind = "empty_result"


class ProviderError(BackendUnavailable):
    """Base class for provider-level failures."""


class ProviderClientError(ProviderError):
    """
    Caller/config issue on the provider side (4xx invalid request, auth,
    unknown model, unsupported parameter). Fix input/config, don't resend.
    """


class ProviderTransientError(ProviderError):
    """
    Rate limits, timeouts, network hiccups, 5xx. The client may resend later;
    the service itself does not.
    """
