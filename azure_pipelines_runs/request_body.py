import json

from .errors import MalformedParametersError
from .types import RunRequestBody


def build(raw_params: str) -> RunRequestBody:
    """
    Turn template parameter text into the run-creation payload.

    Empty text means no parameters. Anything else must parse to a JSON
    object; arrays, scalars and null raise MalformedParametersError.
    """
    if not raw_params:
        return RunRequestBody()

    try:
        parsed = json.loads(raw_params)
    except json.JSONDecodeError as e:
        raise MalformedParametersError(f"Failed to parse template parameters as JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise MalformedParametersError(
            f"Template parameters must be a JSON object, got {type(parsed).__name__}"
        )
    return RunRequestBody(template_parameters=parsed)
