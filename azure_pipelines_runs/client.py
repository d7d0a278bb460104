from typing import Any, Dict, Optional

import requests
from requests.auth import HTTPBasicAuth

from .errors import ResponseDecodeError, StatusFetchError, TriggerRejectedError
from .logging_config import get_logger
from .types import RunRequestBody, RunStatusSnapshot, RunTriggerResult

_logger = get_logger(__name__)

DEFAULT_HOST = "dev.azure.com"
DEFAULT_API_VERSION = "7.1-preview.1"
DEFAULT_TIMEOUT = 10
NO_MESSAGE = "<no message in error response>"

JSON_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


class PipelineClient:
    """Azure DevOps Pipelines runs API, authenticated with a Personal Access Token."""

    def __init__(
        self,
        pat: str,
        host: str = DEFAULT_HOST,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.host = host
        self.api_version = api_version
        self.timeout = timeout
        self.session = session or requests.Session()
        # empty user name, PAT as password: "Basic base64(':' + pat)"
        self.session.auth = HTTPBasicAuth("", pat)
        self.session.headers.update(JSON_HEADERS)

    def __repr__(self):
        return f"PipelineClient(host={self.host!r}, api_version={self.api_version!r})"

    def runs_url(self, organization: str, project: str, pipeline_id: int) -> str:
        return f"https://{self.host}/{organization}/{project}/_apis/pipelines/{pipeline_id}/runs"

    def run_url(self, organization: str, project: str, pipeline_id: int, run_id: int) -> str:
        return f"{self.runs_url(organization, project, pipeline_id)}/{run_id}"

    def trigger(self, organization: str, project: str, pipeline_id: int, body: RunRequestBody) -> RunTriggerResult:
        url = self.runs_url(organization, project, pipeline_id)
        _logger.debug("POST %s", url)
        try:
            response = self.session.post(
                url,
                params={"api-version": self.api_version},
                json=body.to_dict(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise TriggerRejectedError(None, str(e)) from e

        if not response.ok:
            raise TriggerRejectedError(response.status_code, _error_message(response))
        return RunTriggerResult.from_dict(_json_body(response, "run response"))

    def fetch_status(self, organization: str, project: str, pipeline_id: int, run_id: int) -> RunStatusSnapshot:
        url = self.run_url(organization, project, pipeline_id, run_id)
        _logger.debug("GET %s", url)
        try:
            response = self.session.get(
                url,
                params={"api-version": self.api_version},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise StatusFetchError(None, str(e)) from e

        if not response.ok:
            raise StatusFetchError(response.status_code)
        return RunStatusSnapshot.from_dict(_json_body(response, "run status"))


def _json_body(response: requests.Response, where: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise ResponseDecodeError(f"{where}: body is not valid JSON: {e}") from e


def _error_message(response: requests.Response) -> str:
    try:
        payload: Dict[str, Any] = response.json()
    except ValueError:
        return NO_MESSAGE
    message = payload.get("message") if isinstance(payload, dict) else None
    return message if isinstance(message, str) else NO_MESSAGE
