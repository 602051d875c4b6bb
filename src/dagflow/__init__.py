"""DAG workflow engine and execution orchestrator."""

__version__ = "0.1.0"
