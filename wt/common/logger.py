import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler
from wt.common.setup import PATHS
from datetime import datetime

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(filename)s:%(lineno)d] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Handlers are tagged "<logger>:<role>" so repeated get_logger() calls never stack duplicates.
def _has_handler(logger: logging.Logger, role: str) -> bool:
    return any(h.get_name() == f"{logger.name}:{role}" for h in logger.handlers)

def _attach(logger: logging.Logger, handler: logging.Handler, role: str, level):
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT,LOG_DATE_FORMAT))
    handler.set_name(f"{logger.name}:{role}")
    logger.addHandler(handler)
    return handler

# Keeps only the newest `keep` per-run debug logs.
def _prune_debug_runs(debug_dir: Path, name: str, keep: int):
    runs = sorted(debug_dir.glob(f"{name}_*.log"),key=lambda p: p.stat().st_mtime,reverse=True)
    for run in runs[keep:]:
        try: run.unlink()
        except OSError: pass

def get_logger(
        name = "weektime",
        level = logging.INFO,
        log_dir: Path | None = None,
        max_bytes = 5 * 1024 * 1024,
        backup_count = 5,
        persistent = True,
        console = False,
        historical_debugs: int = 10
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(level)

    log_dir = log_dir or PATHS.logs
    log_dir.mkdir(parents=True,exist_ok=True)

    # Rotating log that survives across runs
    if persistent and not _has_handler(logger, "persistent"):
        _attach(logger, RotatingFileHandler(
            filename=log_dir / f"{name}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        ), "persistent", level)

    # latest.log only ever holds the current run
    if not _has_handler(logger, "latest"):
        _attach(logger, logging.FileHandler(log_dir / "latest.log", mode="w", encoding="utf-8"), "latest", level)

    # One full-debug file per run, pruned to the newest `historical_debugs`
    if historical_debugs > 0 and not _has_handler(logger, "historical_debug"):
        debug_dir = log_dir / "debug"
        debug_dir.mkdir(parents=True,exist_ok=True)
        run_path = debug_dir / f"{name}_{datetime.now():%Y-%m-%d_%H-%M-%S_%f}.log"
        _attach(logger, logging.FileHandler(run_path, encoding="utf-8", delay=True), "historical_debug", logging.DEBUG)
        _prune_debug_runs(debug_dir, name, historical_debugs)

    if console:
        set_console(logger, True, level)

    return logger

# Attaches (or detaches) a stderr handler on an already built logger. Used by the CLI's --verbose flag.
def set_console(logger: logging.Logger, enabled: bool, level = logging.DEBUG):
    if enabled:
        if not _has_handler(logger, "console"):
            _attach(logger, logging.StreamHandler(), "console", level)
        return
    for h in [h for h in logger.handlers if h.get_name() == f"{logger.name}:console"]:
        logger.removeHandler(h)

log = get_logger(level=logging.DEBUG,console=False,historical_debugs=10)
log.info("=== INITIALIZED NEW SESSION ===")
