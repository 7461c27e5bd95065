import logging
import json
import datetime
import sys
import os

LOG_DIR = "logs"
CONSOLE_FORMAT = '[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s'


def event_data(record):
    """The dict passed as the single log argument, or {} for plain messages."""
    return record.args if isinstance(record.args, dict) else {}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line:
    {"timestamp", "level", "component", "event", "data"[, "session", "exception"]}

    Components log an event name as the message and a dict as the only
    argument, e.g. logger.info("TrackCreated", {"track_id": ..., "label": ...}).
    """
    def __init__(self, session_id=None):
        super().__init__()
        self.session_id = session_id

    def format(self, record):
        entry = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "event": record.getMessage() if not isinstance(record.args, dict) else record.msg,
            "data": event_data(record),
        }
        if self.session_id:
            entry["session"] = self.session_id
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """[TIME] [LEVEL] [COMPONENT] Event {data}"""
    def __init__(self):
        super().__init__(CONSOLE_FORMAT)

    def format(self, record):
        line = super().format(record)
        data = event_data(record)
        if data:
            line = f"{line} {json.dumps(data, default=str)}"
        return line


def default_log_path(session_id=None, log_dir=LOG_DIR):
    """logs/session_<id>.jsonl, or a timestamped name when no id is given."""
    name = session_id or datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    return os.path.join(log_dir, f"session_{name}.jsonl")


def setup_logging(session_id=None, log_file=None, verbose=False):
    """
    Route every component logger to a JSONL session file and the console.

    The file receives INFO and above (DEBUG when verbose), which includes the
    per-frame tracking events. The console only shows WARNING and above unless
    verbose, so alert lines printed by the CLI stay readable.

    Args:
        session_id (str): tag for the file name and every JSON record (e.g. 'walk01').
        log_file (str): explicit path; overrides the logs/ naming.
        verbose (bool): DEBUG everywhere, including the console.

    Returns:
        str: path of the JSONL log file.
    """
    level = logging.DEBUG if verbose else logging.INFO
    log_file = log_file or default_log_path(session_id)
    if os.path.dirname(log_file):
        os.makedirs(os.path.dirname(log_file), exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    # Re-initialization replaces handlers instead of stacking them
    root_logger.handlers = []

    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(JSONFormatter(session_id))
    file_handler.setLevel(level)
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ConsoleFormatter())
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root_logger.addHandler(console_handler)

    logging.info("LoggingInitialized", {"log_file": log_file, "verbose": verbose})
    return log_file


def get_logger(name):
    return logging.getLogger(name)
