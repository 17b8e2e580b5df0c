import logging
import sys
import warnings

from smsvoice import config, constants
from smsvoice.utils.objects import singleton_factory

from .format import AddFormattedAttributes, DefaultFormatter

# The log levels for third-party modules. They are kept at these levels regardless of the level
# configured for smsvoice, unless trace logging is enabled.
default_log_levels = {
    "boto3": logging.INFO,
    "botocore": logging.ERROR,
    "s3transfer": logging.INFO,
    "urllib3": logging.WARNING,
    "plux": logging.WARNING,
}

trace_log_levels = {
    "botocore": logging.DEBUG,
    "smsvoice.utils.sync": logging.DEBUG,
}


def get_log_level_from_config():
    # overriding the log level if SMSVOICE_LOG has been set
    if config.SMSVOICE_LOG:
        log_level = str(config.SMSVOICE_LOG).upper()
        if log_level.lower() in constants.TRACE_LOG_LEVELS:
            log_level = "DEBUG"
        if log_level == "WARN":
            log_level = "WARNING"
        return logging.getLevelName(log_level)

    return logging.DEBUG if config.DEBUG else logging.INFO


def setup_logging_from_config():
    log_level = get_log_level_from_config()
    setup_logging(log_level)

    if config.is_trace_logging_enabled():
        for name, level in trace_log_levels.items():
            logging.getLogger(name).setLevel(level)


@singleton_factory
def setup_logging_once() -> int:
    """Sets up logging from the configuration on first use, and returns the configured log level."""
    setup_logging_from_config()
    return get_log_level_from_config()


def create_default_handler(log_level: int):
    log_handler = logging.StreamHandler(stream=sys.stderr)
    log_handler.setLevel(log_level)
    log_handler.setFormatter(DefaultFormatter())
    log_handler.addFilter(AddFormattedAttributes())
    return log_handler


def setup_logging(log_level=logging.INFO) -> None:
    """
    Configures the python logging environment for the resource providers.

    :param log_level: the optional log level.
    """
    # basically logging.basicConfig, but with an explicit handler
    log_handler = create_default_handler(log_level)

    # replace any existing handlers
    logging.basicConfig(level=log_level, handlers=[log_handler], force=True)

    # route warnings through logging
    warnings.filterwarnings("default")
    logging.captureWarnings(True)

    logging.root.setLevel(log_level)
    logging.getLogger("smsvoice").setLevel(log_level)
    for logger, level in default_log_levels.items():
        logging.getLogger(logger).setLevel(level)
