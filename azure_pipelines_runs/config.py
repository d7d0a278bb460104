import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .client import DEFAULT_HOST, DEFAULT_TIMEOUT
from .errors import ConfigurationError
from .orchestrator import DEFAULT_POLL_INTERVAL
from .types import RunRequestConfig

# Azure DevOps Personal Access Token (PAT)
AZURE_DEVOPS_PAT_ENV = "AZURE_DEVOPS_EXT_PAT"

_FILE_KEYS = {
    "organization", "project", "pipeline_id", "template_parameters",
    "watch", "poll_interval", "host", "timeout",
}


@dataclass(frozen=True)
class Settings:
    run: RunRequestConfig
    poll_interval: float = DEFAULT_POLL_INTERVAL
    host: str = DEFAULT_HOST
    timeout: float = DEFAULT_TIMEOUT


def get_pat(env_var: str = AZURE_DEVOPS_PAT_ENV) -> str:
    pat = os.getenv(env_var)
    if not pat:
        raise ConfigurationError(
            f"Please set the {env_var} environment variable with your Azure DevOps Personal Access Token."
        )
    return pat


def load_config_file(path: str) -> Dict[str, Any]:
    """
    Load run defaults from a YAML file.

    Expected shape (every key optional):
      organization: my-org
      project: my-project
      pipeline_id: 12
      template_parameters: {environment: staging}   # or a JSON string
      watch: true
      poll_interval: 10
      host: dev.azure.com
      timeout: 10
    """
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"config not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"could not parse config {p}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"config {p} must contain a mapping, got {type(data).__name__}")
    unknown = sorted(set(data) - _FILE_KEYS)
    if unknown:
        raise ConfigurationError(f"unknown keys in config {p}: {', '.join(unknown)}")
    return data


def _pipeline_id(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"pipeline_id must be a non-negative integer, got {value!r}")
    try:
        pipeline_id = int(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"pipeline_id must be a non-negative integer, got {value!r}") from None
    if pipeline_id < 0:
        raise ConfigurationError(f"pipeline_id must be a non-negative integer, got {value!r}")
    return pipeline_id


def _template_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    # mappings from YAML are serialized, unquoted dates become ISO strings;
    # shape checks happen in request_body.build
    return json.dumps(value, default=str)


def _watch(value: Any) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigurationError(f"watch must be true or false, got {value!r}")
    return value


def _number(name: str, value: Any, allow_zero: bool) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
    if number < 0 or (number == 0 and not allow_zero):
        raise ConfigurationError(f"{name} out of range: {value!r}")
    return number


def resolve_settings(overrides: Dict[str, Any], file_values: Optional[Dict[str, Any]] = None) -> Settings:
    """
    Merge config file values with command line values (None means "not given")
    and validate the result.
    """
    merged: Dict[str, Any] = dict(file_values or {})
    merged.update({k: v for k, v in overrides.items() if v is not None})

    for key in ("organization", "project"):
        value = merged.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ConfigurationError(f"{key} is required")
    if merged.get("pipeline_id") is None:
        raise ConfigurationError("pipeline_id is required")

    run = RunRequestConfig(
        organization=merged["organization"].strip(),
        project=merged["project"].strip(),
        pipeline_id=_pipeline_id(merged["pipeline_id"]),
        template_parameters=_template_text(merged.get("template_parameters")),
        watch=_watch(merged.get("watch", False)),
    )
    return Settings(
        run=run,
        poll_interval=_number("poll_interval", merged.get("poll_interval", DEFAULT_POLL_INTERVAL), allow_zero=True),
        host=str(merged.get("host") or DEFAULT_HOST),
        timeout=_number("timeout", merged.get("timeout", DEFAULT_TIMEOUT), allow_zero=False),
    )
