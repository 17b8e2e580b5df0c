import logging
import os
from typing import Union

from smsvoice.constants import DEFAULT_OPERATION_TIMEOUT, LOG_LEVELS, TRACE_LOG_LEVELS, TRUE_STRINGS


def eval_log_type(env_var_name: str) -> Union[str, bool]:
    """Get the log type from environment variable"""
    log_type = os.environ.get(env_var_name, "").lower().strip()
    return log_type if log_type in LOG_LEVELS else False


def is_env_true(env_var_name: str) -> bool:
    """Whether the given environment variable has a truthy value."""
    return os.environ.get(env_var_name, "").lower().strip() in TRUE_STRINGS


def parse_float_env(env_var_name: str, default: float) -> float:
    value = os.environ.get(env_var_name, "").strip()
    return float(value) if value else default


def parse_tags_env(env_var_name: str) -> dict[str, str]:
    """
    Parses a comma-separated list of ``key=value`` pairs, e.g. ``team=sms,env=prod``.
    Entries without a ``=`` are ignored.
    """
    result = {}
    for entry in os.environ.get(env_var_name, "").split(","):
        key, sep, value = entry.partition("=")
        if not sep or not key.strip():
            continue
        result[key.strip()] = value.strip()
    return result


# whether to enable verbose debug logging
SMSVOICE_LOG = eval_log_type("SMSVOICE_LOG")
DEBUG = is_env_true("DEBUG") or SMSVOICE_LOG in TRACE_LOG_LEVELS

# endpoint override for the SMS service, e.g., to target an emulator
ENDPOINT_URL = os.environ.get("SMSVOICE_ENDPOINT_URL", "").strip() or None

# region used when the request does not carry one
AWS_DEFAULT_REGION = os.environ.get("AWS_DEFAULT_REGION", "").strip() or None

# tags applied to every resource in addition to the resource's own tags
DEFAULT_TAGS = parse_tags_env("SMSVOICE_DEFAULT_TAGS")

# default operation timeouts (in seconds), overridable per resource via the timeouts block
DEFAULT_CREATE_TIMEOUT = parse_float_env("DEFAULT_CREATE_TIMEOUT", DEFAULT_OPERATION_TIMEOUT)
DEFAULT_UPDATE_TIMEOUT = parse_float_env("DEFAULT_UPDATE_TIMEOUT", DEFAULT_OPERATION_TIMEOUT)
DEFAULT_DELETE_TIMEOUT = parse_float_env("DEFAULT_DELETE_TIMEOUT", DEFAULT_OPERATION_TIMEOUT)

# backoff between two status checks while waiting for a status transition
STATUS_POLL_INITIAL_INTERVAL = parse_float_env("STATUS_POLL_INITIAL_INTERVAL", 0.1)
STATUS_POLL_MAX_INTERVAL = parse_float_env("STATUS_POLL_MAX_INTERVAL", 10)
STATUS_POLL_MULTIPLIER = parse_float_env("STATUS_POLL_MULTIPLIER", 2)

# how many consecutive "not found" results are tolerated while waiting for a target status
STATUS_NOT_FOUND_CHECKS = int(os.environ.get("STATUS_NOT_FOUND_CHECKS", "").strip() or 20)

# transport retries of the boto client (not of status transitions)
BOTO_RETRY_MODE = os.environ.get("BOTO_RETRY_MODE", "").strip() or "standard"
BOTO_MAX_ATTEMPTS = int(os.environ.get("BOTO_MAX_ATTEMPTS", "").strip() or 5)


def is_trace_logging_enabled():
    if SMSVOICE_LOG:
        log_level = str(SMSVOICE_LOG).upper()
        return log_level.lower() in TRACE_LOG_LEVELS
    return False


# set log levels immediately, but will be overwritten later by setup_logging
if DEBUG:
    logging.getLogger("smsvoice").setLevel(logging.DEBUG)
