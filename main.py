import sys

from azure_pipelines_runs.cli import run

if __name__ == "__main__":
    sys.exit(run(sys.argv[1:]))
