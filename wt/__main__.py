import sys
from wt.common.logger import log
from wt.cli import cli

# Entry point for `python -m wt` and the `weektime` console script
def run() -> None:
    try:
        cli.main(prog_name="weektime")
    except SystemExit:
        raise
    except Exception:
        # Full stack trace, always
        log.exception("Uncaught exception in entrypoint, exiting")
        sys.exit(1)

if __name__ == "__main__":
    run()
