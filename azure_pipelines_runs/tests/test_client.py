import base64

import pytest
import requests

from azure_pipelines_runs.client import NO_MESSAGE, PipelineClient
from azure_pipelines_runs.errors import ResponseDecodeError, StatusFetchError, TriggerRejectedError
from azure_pipelines_runs.request_body import build

RUN_RESPONSE = {
    "pipeline": {"id": 12, "name": "deploy-web", "revision": 3},
    "id": 345,
    "state": "inProgress",
    "_links": {"web": {"href": "https://dev.azure.com/contoso/web/_build/results?buildId=345"}},
}


def _final_url(call):
    return requests.Request(call["method"], call["url"], params=call.get("params")).prepare().url


def test_authorization_header_encodes_empty_user_and_pat():
    client = PipelineClient("secret-pat")
    prepared = client.session.prepare_request(requests.Request("GET", "https://dev.azure.com/contoso"))
    expected = "Basic " + base64.b64encode(b":secret-pat").decode("ascii")
    assert prepared.headers["Authorization"] == expected
    assert prepared.headers["Accept"] == "application/json"
    assert prepared.headers["Content-Type"] == "application/json"


def test_repr_does_not_leak_pat():
    assert "secret-pat" not in repr(PipelineClient("secret-pat"))


def test_trigger_posts_body_and_decodes_result(recording_session, response):
    session = recording_session([response(200, RUN_RESPONSE)])
    client = PipelineClient("pat", session=session)

    result = client.trigger("contoso", "web", 12, build('{"env":"staging"}'))

    assert result.pipeline_name == "deploy-web"
    assert result.pipeline_id == 12
    assert result.run_id == 345
    assert result.state == "inProgress"
    assert result.web_url.endswith("buildId=345")

    call = session.calls[0]
    assert call["method"] == "POST"
    assert _final_url(call) == "https://dev.azure.com/contoso/web/_apis/pipelines/12/runs?api-version=7.1-preview.1"
    assert call["json"] == {
        "resources": {"repositories": {"self": {}}},
        "templateParameters": {"env": "staging"},
    }
    assert call["timeout"] == 10


def test_trigger_rejection_carries_status_and_message(recording_session, response):
    session = recording_session([response(400, {"message": "No pool was specified."})])
    client = PipelineClient("pat", session=session)

    with pytest.raises(TriggerRejectedError) as exc:
        client.trigger("contoso", "web", 12, build(""))
    assert exc.value.status == 400
    assert exc.value.message == "No pool was specified."
    assert "400" in str(exc.value)


def test_trigger_rejection_with_undecodable_body_uses_placeholder(recording_session, response):
    session = recording_session([response(401, "<html>Sign in</html>")])
    client = PipelineClient("pat", session=session)

    with pytest.raises(TriggerRejectedError) as exc:
        client.trigger("contoso", "web", 12, build(""))
    assert exc.value.status == 401
    assert exc.value.message == NO_MESSAGE


def test_trigger_transport_failure_is_rejection_without_status(recording_session):
    session = recording_session([requests.exceptions.ConnectTimeout("timed out")])
    client = PipelineClient("pat", session=session)

    with pytest.raises(TriggerRejectedError) as exc:
        client.trigger("contoso", "web", 12, build(""))
    assert exc.value.status is None


@pytest.mark.parametrize("body", [
    {"pipeline": {"id": 12}, "id": 345},
    {"pipeline": {"id": "12", "name": "deploy-web"}, "id": 345},
    {"pipeline": {"id": 12, "name": "deploy-web"}},
    [1, 2],
    "not json at all",
])
def test_trigger_success_with_unexpected_shape_is_decode_error(recording_session, response, body):
    session = recording_session([response(200, body)])
    client = PipelineClient("pat", session=session)

    with pytest.raises(ResponseDecodeError):
        client.trigger("contoso", "web", 12, build(""))


def test_fetch_status_reads_state_and_result(recording_session, response):
    session = recording_session([response(200, {"state": "completed", "result": "succeeded", "id": 345})])
    client = PipelineClient("pat", host="azure.example.com", session=session)

    snapshot = client.fetch_status("contoso", "web", 12, 345)

    assert snapshot.state == "completed"
    assert snapshot.result == "succeeded"
    assert snapshot.is_terminal
    call = session.calls[0]
    assert call["method"] == "GET"
    assert _final_url(call) == "https://azure.example.com/contoso/web/_apis/pipelines/12/runs/345?api-version=7.1-preview.1"


def test_fetch_status_non_success_is_status_fetch_error(recording_session, response):
    session = recording_session([response(503, {"message": "busy"})])
    client = PipelineClient("pat", session=session)

    with pytest.raises(StatusFetchError) as exc:
        client.fetch_status("contoso", "web", 12, 345)
    assert exc.value.status == 503


def test_fetch_status_transport_failure_is_status_fetch_error(recording_session):
    session = recording_session([requests.exceptions.ConnectionError("reset")])
    client = PipelineClient("pat", session=session)

    with pytest.raises(StatusFetchError) as exc:
        client.fetch_status("contoso", "web", 12, 345)
    assert exc.value.status is None


def test_fetch_status_success_without_state_is_decode_error(recording_session, response):
    session = recording_session([response(200, {"id": 345})])
    client = PipelineClient("pat", session=session)

    with pytest.raises(ResponseDecodeError):
        client.fetch_status("contoso", "web", 12, 345)


def test_trigger_with_unexpected_links_still_reports_run(recording_session, response):
    body = dict(RUN_RESPONSE, _links={"web": "https://dev.azure.com/contoso"})
    session = recording_session([response(200, body)])
    client = PipelineClient("pat", session=session)

    result = client.trigger("contoso", "web", 12, build(""))

    assert result.run_id == 345
    assert result.web_url is None
