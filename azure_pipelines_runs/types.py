from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ResponseDecodeError

TERMINAL_STATES = frozenset({"completed", "canceled", "failed"})


class RunState(str, Enum):
    TRIGGERING = "triggering"
    TRIGGERED = "triggered"
    POLLING = "polling"
    TERMINAL = "terminal"
    FAILED = "failed"
    CANCELLED = "cancelled"


def _field(d: Any, key: str, kind: type, where: str) -> Any:
    if not isinstance(d, dict):
        raise ResponseDecodeError(f"{where}: expected a JSON object, got {type(d).__name__}")
    if key not in d:
        raise ResponseDecodeError(f"{where}: missing field '{key}'")
    value = d[key]
    # bool is an int subclass, never a valid id
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ResponseDecodeError(
            f"{where}: field '{key}' should be {kind.__name__}, got {type(value).__name__}"
        )
    return value


@dataclass(frozen=True)
class RunRequestConfig:
    organization: str
    project: str
    pipeline_id: int
    template_parameters: str = ""
    watch: bool = False


@dataclass
class RunRequestBody:
    template_parameters: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resources": {"repositories": {"self": {}}},
            "templateParameters": self.template_parameters,
        }


@dataclass(frozen=True)
class RunTriggerResult:
    pipeline_name: str
    pipeline_id: int
    run_id: int
    state: Optional[str] = None
    web_url: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Any) -> "RunTriggerResult":
        """Decode the body of a successful run-creation response."""
        pipeline = _field(d, "pipeline", dict, "run response")
        state = d.get("state")
        links = d.get("_links")
        web = links.get("web") if isinstance(links, dict) else None
        href = web.get("href") if isinstance(web, dict) else None
        return cls(
            pipeline_name=_field(pipeline, "name", str, "run response pipeline"),
            pipeline_id=_field(pipeline, "id", int, "run response pipeline"),
            run_id=_field(d, "id", int, "run response"),
            state=state if isinstance(state, str) else None,
            web_url=href if isinstance(href, str) else None,
        )


@dataclass(frozen=True)
class RunStatusSnapshot:
    state: str
    result: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @classmethod
    def from_dict(cls, d: Any) -> "RunStatusSnapshot":
        result = d.get("result") if isinstance(d, dict) else None
        return cls(
            state=_field(d, "state", str, "run status"),
            result=result if isinstance(result, str) else None,
        )


@dataclass
class RunOutcome:
    """What a single trigger (and optional watch) produced."""
    state: RunState
    trigger: Optional[RunTriggerResult] = None
    final_status: Optional[str] = None
    polls: int = 0
    observed_states: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    message: str = ""

    @property
    def success(self) -> bool:
        return self.state == RunState.TERMINAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "state": self.state.value,
            "pipeline_name": self.trigger.pipeline_name if self.trigger else None,
            "pipeline_id": self.trigger.pipeline_id if self.trigger else None,
            "run_id": self.trigger.run_id if self.trigger else None,
            "final_status": self.final_status,
            "polls": self.polls,
            "errors": list(self.errors),
            "message": self.message,
        }


__all__ = [
    "TERMINAL_STATES",
    "RunState",
    "RunRequestConfig",
    "RunRequestBody",
    "RunTriggerResult",
    "RunStatusSnapshot",
    "RunOutcome",
]
