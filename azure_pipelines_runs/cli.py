import argparse
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .client import PipelineClient
from .config import AZURE_DEVOPS_PAT_ENV, get_pat, load_config_file, resolve_settings
from .errors import ConfigurationError
from .logging_config import get_logger, set_level
from .orchestrator import orchestrate
from .types import RunState

_logger = get_logger(__name__)

EXIT_OK = 0
EXIT_RUN_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_CANCELLED = 130


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid pipeline id: {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"invalid pipeline id: {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="azure-pipelines-runs",
        description=f"Trigger an Azure DevOps pipeline run. The PAT is read from ${AZURE_DEVOPS_PAT_ENV}.",
    )
    parser.add_argument("-o", "--organization", help="Azure DevOps Organization name")
    parser.add_argument("-p", "--project", help="Azure DevOps Project")
    parser.add_argument("-i", "--pipeline_id", "--pipeline-id", dest="pipeline_id", type=_non_negative_int,
                        help="Azure Pipeline ID")
    parser.add_argument("-t", "--template_parameters", "--template-parameters", dest="template_parameters",
                        help="Pipeline Template Parameters (JSON object)")
    parser.add_argument("-w", "--watch", action="store_true", default=None,
                        help="Watch pipeline status and block until finished")
    parser.add_argument("--config", help="Optional YAML file with defaults for the options above")
    parser.add_argument("--poll-interval", dest="poll_interval", type=float,
                        help="Seconds between status polls in watch mode (default 10)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default INFO)")
    return parser


def run(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        set_level(args.log_level)
        file_values = load_config_file(args.config) if args.config else {}
        settings = resolve_settings(
            {
                "organization": args.organization,
                "project": args.project,
                "pipeline_id": args.pipeline_id,
                "template_parameters": args.template_parameters,
                "watch": args.watch,
                "poll_interval": args.poll_interval,
            },
            file_values,
        )
        pat = get_pat(AZURE_DEVOPS_PAT_ENV)
    except (ConfigurationError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    client = PipelineClient(pat, host=settings.host, timeout=settings.timeout)
    try:
        outcome = orchestrate(settings.run, client, poll_interval=settings.poll_interval)
    except KeyboardInterrupt:
        _logger.warning("Interrupted, no longer watching the run")
        return EXIT_CANCELLED

    _logger.debug("Run outcome: %s", outcome.to_dict())
    if outcome.success:
        return EXIT_OK
    if outcome.state == RunState.CANCELLED:
        return EXIT_CANCELLED
    # print minimal error info to stderr
    for e in outcome.errors:
        print(f"ERROR: {e}", file=sys.stderr)
    return EXIT_RUN_FAILED


if __name__ == "__main__":
    raise SystemExit(run())
