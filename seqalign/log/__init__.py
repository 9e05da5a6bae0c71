"""Utility functionality for logging.
"""
import os
import sys

import logbook

from seqalign import utils

LOG_NAME = "seqalign"

def get_log_dir(config):
    return config.get("log_dir")

logger = logbook.Logger(LOG_NAME)
logger_cl = logbook.Logger(LOG_NAME + "-commands")

def _is_cl(record, _):
    return record.channel == LOG_NAME + "-commands"

def _not_cl(record, handler):
    return not _is_cl(record, handler)

class CloseableNestedSetup(logbook.NestedSetup):
    _pushed = False

    def push_thread(self):
        super(CloseableNestedSetup, self).push_thread()
        self._pushed = True

    def close(self):
        if self._pushed:
            self.pop_thread()
            self._pushed = False
        for obj in self.objects:
            if hasattr(obj, "close"):
                obj.close()

def _create_log_handler(config):
    logbook.set_datetime_format("utc")
    handlers = [logbook.NullHandler()]
    format_str = "".join(["[{record.time:%Y-%m-%dT%H:%MZ}] " if config.get("include_time", True) else "",
                          "{record.level_name}: {record.message}"])

    log_dir = get_log_dir(config)
    if log_dir:
        utils.safe_makedir(log_dir)
        handlers.append(logbook.FileHandler(os.path.join(log_dir, "%s.log" % LOG_NAME),
                                            format_string=format_str, level="INFO",
                                            filter=_not_cl))
        handlers.append(logbook.FileHandler(os.path.join(log_dir, "%s-debug.log" % LOG_NAME),
                                            format_string=format_str, level="DEBUG", bubble=True,
                                            filter=_not_cl))
        handlers.append(logbook.FileHandler(os.path.join(log_dir, "%s-commands.log" % LOG_NAME),
                                            format_string=format_str, level="DEBUG",
                                            filter=_is_cl))
    handlers.append(logbook.StreamHandler(sys.stderr, format_string=format_str, bubble=True,
                                          level=config.get("log_level", "INFO"), filter=_not_cl))
    return CloseableNestedSetup(handlers)

def setup_local_logging(config=None):
    """Setup logging for a generation pass or a wrapper task.

    Both run in a single local process, so handlers are pushed directly
    onto the current thread. Returns the handler so callers can pop it.
    """
    if config is None: config = {}
    handler = _create_log_handler(config)
    handler.push_thread()
    return handler
