import logging
import sys
import tqdm
from .conf import RunConfig

LOGGER_NAME = "dskclean"
FILE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
CONSOLE_FORMAT = "%(message)s"


class TqdmConsoleHandler(logging.StreamHandler):
    """
    Console handler that writes through `tqdm.write`, so echoed log lines are
    printed above an active progress bar instead of through it.
    """

    def emit(self, record):
        try:
            tqdm.tqdm.write(self.format(record), file=self.stream)
            self.flush()
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)


def prepare_log(config: RunConfig) -> logging.Logger:
    """
    Set up the run log and the console echo for the `dskclean` logger.

    The log file is truncated and recreated on every call and receives every
    record at DEBUG level, quiet or not. The console gets INFO records (DEBUG
    when verbose) unless the run is quiet. Handlers from an earlier call are
    closed and replaced.

    Args:
        config (RunConfig): Run configuration with the log file and verbosity flags.

    Returns:
        logging.Logger: The configured package logger.

    Example:
        >>> logger = prepare_log(RunConfig(log_file=Path("/tmp/clean.log"), quiet=True))
        >>> len(logger.handlers)
        1
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    log_file = config.log_file
    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    logger.addHandler(file_handler)

    if not config.quiet:
        console = TqdmConsoleHandler(sys.stdout)
        console.setLevel(logging.DEBUG if config.verbose else logging.INFO)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(console)
    return logger
