"""Console/file logging with workflow instance and node context."""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


class WorkflowLogFormatter(logging.Formatter):
    """Formatter that prefixes records with instance/node context."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "CRITICAL": "\033[35m",   # Magenta
    }

    def __init__(self, label: str, use_colors: bool = True):
        super().__init__()
        self.label = label
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        instance_context = ""
        if hasattr(record, "owner_id"):
            instance_context = f"[{record.owner_id}] "

        node_context = ""
        if hasattr(record, "node_id"):
            node_context = f"[{record.node_id}] "

        if self.use_colors:
            level_color = self.LEVEL_COLORS.get(record.levelname, "")
            reset = "\033[0m"
        else:
            level_color = ""
            reset = ""

        line = (
            f"{timestamp} {level_color}{record.levelname:8s}{reset} "
            f"[{self.label}] {instance_context}{node_context}{record.getMessage()}"
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that stamps the current owner/node on every record."""

    def __init__(self, logger: logging.Logger, label: str):
        super().__init__(logger, {})
        self.label = label
        self.current_owner_id: Optional[str] = None
        self.current_node_id: Optional[str] = None

    def set_context(self, owner_id: Optional[str] = None, node_id: Optional[str] = None):
        if owner_id:
            self.current_owner_id = owner_id
        if node_id is not None:  # Allow clearing the node with ""
            self.current_node_id = node_id or None

    def clear_context(self):
        self.current_owner_id = None
        self.current_node_id = None

    def process(self, msg, kwargs):
        extra = kwargs.get("extra", {})
        if self.current_owner_id:
            extra["owner_id"] = self.current_owner_id
        if self.current_node_id:
            extra["node_id"] = self.current_node_id
        kwargs["extra"] = extra
        return msg, kwargs

    def workflow_started(self, owner_id: str, workflow_name: str):
        self.set_context(owner_id=owner_id)
        self.info(f"▶️ Workflow started: {workflow_name}")

    def node_finished(self, node_id: str, detail: str = ""):
        self.set_context(node_id=node_id)
        self.info(f"✅ Node finished{': ' + detail if detail else ''}")
        self.set_context(node_id="")

    def workflow_finished(self, status: str):
        self.info(f"🏁 Workflow {status}")
        self.clear_context()


def setup_rich_logging(
    name: str,
    log_dir: Path,
    log_level: str = "INFO",
    use_file: bool = True,
) -> ContextLogger:
    """
    Configure console (and optionally file) logging.

    Handlers are attached to the ``dagflow`` package logger so every module
    logger (``dagflow.workflow.executor`` etc.) is routed through them.

    Args:
        name: Label shown in every line (e.g. the CLI command)
        log_dir: Directory for the log file
        log_level: DEBUG, INFO, WARNING or ERROR
        use_file: Also write ``logs/<name>.log``

    Returns:
        ContextLogger for the caller's own lines
    """
    package_logger = logging.getLogger("dagflow")
    package_logger.setLevel(getattr(logging, log_level.upper()))

    # Close existing handlers before clearing (prevents file descriptor leak)
    for handler in package_logger.handlers[:]:
        handler.close()
        package_logger.removeHandler(handler)

    use_colors = sys.stderr.isatty() if hasattr(sys.stderr, "isatty") else False
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(WorkflowLogFormatter(name, use_colors=use_colors))
    package_logger.addHandler(console_handler)

    if use_file:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / f"{name}.log", encoding="utf-8")
        file_handler.setFormatter(WorkflowLogFormatter(name, use_colors=False))
        package_logger.addHandler(file_handler)

    # PID keeps concurrent CLI processes from sharing a logger name
    logger = logging.getLogger(f"dagflow.run.{name}-{os.getpid()}")
    return ContextLogger(logger, name)
