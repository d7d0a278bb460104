import threading
from typing import Optional

from . import request_body
from .client import PipelineClient
from .errors import (
    MalformedParametersError,
    ResponseDecodeError,
    StatusFetchError,
    TriggerRejectedError,
)
from .logging_config import get_logger
from .types import RunOutcome, RunRequestConfig, RunState, RunTriggerResult

_logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 10.0


class RunOrchestrator:
    """
    Trigger a pipeline run and, when the config asks for it, watch it to the end.

    State machine:
      TRIGGERING -> TRIGGERED -> (watch) POLLING -> TERMINAL
      TRIGGERING -> FAILED, POLLING -> FAILED, POLLING -> CANCELLED

    The watch loop has no iteration cap and no overall timeout. It stops on a
    terminal state, a fatal error, or when `cancel_event` is set. Setting the
    event interrupts the wait between polls immediately.
    """

    def __init__(
        self,
        client: PipelineClient,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.client = client
        self.poll_interval = poll_interval
        self.cancel_event = cancel_event or threading.Event()
        self.state = RunState.TRIGGERING

    def cancel(self) -> None:
        self.cancel_event.set()

    def run(self, config: RunRequestConfig) -> RunOutcome:
        self.state = RunState.TRIGGERING
        try:
            body = request_body.build(config.template_parameters)
            trigger = self.client.trigger(config.organization, config.project, config.pipeline_id, body)
        except (MalformedParametersError, TriggerRejectedError, ResponseDecodeError) as e:
            return self._finish(RunOutcome(state=RunState.FAILED, errors=[str(e)], message=str(e)))

        self.state = RunState.TRIGGERED
        _logger.info(
            "Pipeline [%s] with id [%s] triggered successfully, run id = [%s]",
            trigger.pipeline_name, trigger.pipeline_id, trigger.run_id,
        )
        if trigger.web_url:
            _logger.info("Run details: %s", trigger.web_url)

        if not config.watch:
            return self._finish(RunOutcome(
                state=RunState.TERMINAL,
                trigger=trigger,
                final_status=trigger.state,
                message="run triggered",
            ))
        return self.watch(config, trigger)

    def watch(self, config: RunRequestConfig, trigger: RunTriggerResult) -> RunOutcome:
        self.state = RunState.POLLING
        outcome = RunOutcome(state=RunState.POLLING, trigger=trigger)

        while True:
            if self.cancel_event.is_set():
                return self._cancelled(outcome)

            outcome.polls += 1
            try:
                snapshot = self.client.fetch_status(
                    config.organization, config.project, config.pipeline_id, trigger.run_id
                )
            except StatusFetchError as e:
                _logger.error("%s", e)
            except ResponseDecodeError as e:
                outcome.state = RunState.FAILED
                outcome.errors.append(str(e))
                outcome.message = str(e)
                return self._finish(outcome)
            else:
                outcome.observed_states.append(snapshot.state)
                if snapshot.is_terminal:
                    if snapshot.result:
                        _logger.info("Pipeline has finished with status: %s (result: %s)", snapshot.state, snapshot.result)
                    else:
                        _logger.info("Pipeline has finished with status: %s", snapshot.state)
                    outcome.state = RunState.TERMINAL
                    outcome.final_status = snapshot.state
                    outcome.message = f"run finished with status {snapshot.state}"
                    return self._finish(outcome)
                _logger.info("Pipeline status: %s", snapshot.state)

            if self.cancel_event.wait(self.poll_interval):
                return self._cancelled(outcome)

    def _cancelled(self, outcome: RunOutcome) -> RunOutcome:
        outcome.state = RunState.CANCELLED
        outcome.message = f"watch cancelled after {outcome.polls} poll(s)"
        _logger.warning("Stopped watching run: %s", outcome.message)
        return self._finish(outcome)

    def _finish(self, outcome: RunOutcome) -> RunOutcome:
        self.state = outcome.state
        return outcome


def orchestrate(
    config: RunRequestConfig,
    client: PipelineClient,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    cancel_event: Optional[threading.Event] = None,
) -> RunOutcome:
    """Run one trigger (and optional watch) with a fresh orchestrator."""
    return RunOrchestrator(client, poll_interval=poll_interval, cancel_event=cancel_event).run(config)
