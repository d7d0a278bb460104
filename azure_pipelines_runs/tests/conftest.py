import json
import threading
from typing import Any, List

import pytest
import requests

from azure_pipelines_runs.types import RunStatusSnapshot, RunTriggerResult


def make_response(status: int, body: Any = None) -> requests.Response:
    r = requests.Response()
    r.status_code = status
    if isinstance(body, (bytes, str)):
        r._content = body.encode("utf-8") if isinstance(body, str) else body
    else:
        r._content = json.dumps(body).encode("utf-8") if body is not None else b""
    r.encoding = "utf-8"
    return r


class RecordingSession(requests.Session):
    """requests.Session that never touches the network: answers from a script."""

    def __init__(self, script: List[Any]):
        super().__init__()
        self.script = list(script)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class ScriptedClient:
    """Stands in for PipelineClient; each scripted item is returned or raised."""

    def __init__(self, trigger_result: Any, statuses: List[Any] = (), cancel_after: int = 0,
                 cancel_event: threading.Event = None):
        self.trigger_result = trigger_result
        self.statuses = list(statuses)
        self.cancel_after = cancel_after
        self.cancel_event = cancel_event
        self.trigger_calls = []
        self.status_calls = []

    def trigger(self, organization, project, pipeline_id, body):
        self.trigger_calls.append((organization, project, pipeline_id, body))
        if isinstance(self.trigger_result, Exception):
            raise self.trigger_result
        return self.trigger_result

    def fetch_status(self, organization, project, pipeline_id, run_id):
        self.status_calls.append((organization, project, pipeline_id, run_id))
        if self.cancel_after and len(self.status_calls) >= self.cancel_after:
            self.cancel_event.set()
        item = self.statuses.pop(0) if self.statuses else RunStatusSnapshot("inProgress")
        if isinstance(item, Exception):
            raise item
        if isinstance(item, str):
            return RunStatusSnapshot(item)
        return item


@pytest.fixture
def response():
    return make_response


@pytest.fixture
def recording_session():
    return RecordingSession


@pytest.fixture
def scripted_client():
    return ScriptedClient


@pytest.fixture
def triggered():
    return RunTriggerResult(pipeline_name="deploy-web", pipeline_id=12, run_id=345, state="inProgress")
