from typing import Optional


class PipelineRunError(Exception):
    """Base class for every error raised while triggering or watching a run."""


class ConfigurationError(PipelineRunError):
    """Missing credential or unusable run configuration, detected before any request."""


class MalformedParametersError(PipelineRunError):
    """Template parameter text is not valid JSON or not a JSON object."""


class TriggerRejectedError(PipelineRunError):
    """
    The service refused to create the run.

    `status` is the HTTP status code, or None when no response was received
    (connection error, timeout).
    """

    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        if status is None:
            text = f"Failed to trigger the pipeline run: {message}"
        else:
            text = f"Failed to trigger the pipeline run, status code: {status}\nMessage: {message}"
        super().__init__(text)


class ResponseDecodeError(PipelineRunError):
    """The service answered with success but the body has an unexpected shape."""


class StatusFetchError(PipelineRunError):
    """A single status poll failed; the watch loop keeps going."""

    def __init__(self, status: Optional[int], detail: str = ""):
        self.status = status
        self.detail = detail
        if status is None:
            text = f"Failed to retrieve pipeline status: {detail}"
        else:
            text = f"Failed to retrieve pipeline status: {status}"
        super().__init__(text)


__all__ = [
    "PipelineRunError",
    "ConfigurationError",
    "MalformedParametersError",
    "TriggerRejectedError",
    "ResponseDecodeError",
    "StatusFetchError",
]
