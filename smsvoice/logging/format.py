"""Tools for formatting smsvoice logs."""
import logging
from functools import lru_cache

MAX_THREAD_NAME_LEN = 12
MAX_NAME_LEN = 26

LOG_FORMAT = f"%(asctime)s.%(msecs)03d %(sv_level)5s --- [%(sv_thread){MAX_THREAD_NAME_LEN}s] %(sv_name)-{MAX_NAME_LEN}s : %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

CUSTOM_LEVEL_NAMES = {
    50: "FATAL",
    40: "ERROR",
    30: "WARN",
    20: "INFO",
    10: "DEBUG",
}


class DefaultFormatter(logging.Formatter):
    """
    A formatter that uses ``LOG_FORMAT`` and ``LOG_DATE_FORMAT``.
    """

    def __init__(self, fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT):
        super().__init__(fmt=fmt, datefmt=datefmt)


class AddFormattedAttributes(logging.Filter):
    """
    Filter that adds three attributes to a log record:

    - sv_level: the abbreviated loglevel that's max 5 characters long
    - sv_name: the abbreviated name of the logger (e.g., `s.resources.phone_pool`), trimmed to ``MAX_NAME_LEN``
    - sv_thread: the abbreviated thread name (prefix trimmed, .e.g, ``omeThread-108``)
    """

    max_name_len: int
    max_thread_len: int

    def __init__(self, max_name_len: int = None, max_thread_len: int = None):
        super().__init__()
        self.max_name_len = max_name_len if max_name_len else MAX_NAME_LEN
        self.max_thread_len = max_thread_len if max_thread_len else MAX_THREAD_NAME_LEN

    def filter(self, record):
        record.sv_level = CUSTOM_LEVEL_NAMES.get(record.levelno, record.levelname)
        record.sv_name = self._get_compressed_logger_name(record.name)
        record.sv_thread = record.threadName[-self.max_thread_len :]
        return True

    @lru_cache(maxsize=256)
    def _get_compressed_logger_name(self, name):
        return compress_logger_name(name, self.max_name_len)


def compress_logger_name(name: str, length: int) -> str:
    """
    Creates a short version of a logger name. For example ``smsvoice.resources.phone_pool`` with length=22 turns
    into ``s.resources.phone_pool``.

    :param name: the logger name
    :param length: the max length of the logger name
    :return: the compressed name
    """
    if len(name) <= length:
        return name

    parts = name.split(".")
    parts.reverse()

    new_parts = []

    # start with every part collapsed to its first letter: x.x.x needs 2n - 1 characters
    cur_length = (len(parts) * 2) - 1

    for i, part in enumerate(parts):
        next_len = cur_length + (len(part) - 1)

        if next_len > length:
            # out of room, the remaining parts keep only their first letter
            new_parts += [p[0] for p in parts[i:]]

            # the innermost part would otherwise be a single letter, show as much of it as fits
            if i == 0:
                remaining = length - cur_length
                if remaining > 0:
                    new_parts[0] = part[: (remaining + 1)]

            break

        new_parts.append(part)
        cur_length = next_len

    new_parts.reverse()
    return ".".join(new_parts)
