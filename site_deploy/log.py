import logging
import sys

LOG_FORMAT: str = "[%(levelname)s] %(message)s"

# botocore/urllib3 are very chatty at DEBUG; keep them quiet even with --verbose.
NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "s3transfer")

# Set on the handlers installed here so a second call can find and replace them.
HANDLER_MARKER: str = "_site_deploy_handler"


class _BelowWarning(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


def configure_logging(verbose: bool = False) -> None:
    """
    Sends INFO/DEBUG lines to stdout and WARNING/ERROR lines to stderr.

    Output looks like `[INFO] Creating S3 bucket...`. Calling this twice replaces
    the handlers it installed instead of stacking them; other handlers are left alone.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    stdout_handler.addFilter(_BelowWarning())

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.setLevel(logging.WARNING)

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, HANDLER_MARKER, False):
            root.removeHandler(handler)
    for handler in (stdout_handler, stderr_handler):
        setattr(handler, HANDLER_MARKER, True)
    root.addHandler(stdout_handler)
    root.addHandler(stderr_handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
