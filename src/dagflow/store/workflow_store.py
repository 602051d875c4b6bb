"""File-backed workflow store.

Workflows live as ``<workflow_id>.json``, ``.yaml`` or ``.yml`` documents in
one directory. ``load_graph`` never raises: anything missing or malformed
is logged and reported as ``None`` so ``start`` can refuse cleanly.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import ValidationError

from ..core.collaborators import GraphStore
from ..utils.validators import validate_identifier
from ..workflow.graph import Graph
from ..workflow.schema import WorkflowDocument

logger = logging.getLogger(__name__)

WORKFLOW_SUFFIXES = (".json", ".yaml", ".yml")


class WorkflowNotFoundError(LookupError):
    """No document exists for the requested workflow id."""


class WorkflowLoadError(ValueError):
    """A workflow document exists but cannot be turned into a graph."""


class FileWorkflowStore(GraphStore):
    """Loads workflow documents from a directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, workflow_id: str) -> Optional[Path]:
        """First existing document for ``workflow_id``, by suffix preference."""
        validate_identifier(workflow_id, "workflow_id")
        for suffix in WORKFLOW_SUFFIXES:
            candidate = self.directory / f"{workflow_id}{suffix}"
            if candidate.is_file():
                return candidate
        return None

    def list_workflow_ids(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        ids = {
            path.stem
            for path in self.directory.iterdir()
            if path.is_file() and path.suffix in WORKFLOW_SUFFIXES
        }
        return sorted(ids)

    def read_document(self, workflow_id: str) -> WorkflowDocument:
        """Parse the document for ``workflow_id``.

        Raises:
            WorkflowNotFoundError: No document for the id
            WorkflowLoadError: Unreadable file, syntax or schema error
        """
        try:
            path = self.path_for(workflow_id)
        except ValueError as e:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found: {e}") from e
        if path is None:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found in {self.directory}")

        try:
            text = path.read_text()
        except OSError as e:
            raise WorkflowLoadError(f"Cannot read workflow file {path}: {e}") from e

        try:
            if path.suffix == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise WorkflowLoadError(f"Workflow file {path} is not valid {path.suffix[1:].upper()}: {e}") from e

        if not isinstance(data, dict):
            raise WorkflowLoadError(f"Workflow file {path} must contain a mapping with nodes and edges")

        try:
            return WorkflowDocument.model_validate(data)
        except ValidationError as e:
            raise WorkflowLoadError(f"Workflow file {path} failed schema validation: {e}") from e

    def read_graph(self, workflow_id: str) -> Graph:
        """Like ``load_graph`` but raises instead of returning None."""
        document = self.read_document(workflow_id)
        try:
            return document.to_graph(name=document.name or workflow_id)
        except ValueError as e:
            raise WorkflowLoadError(f"Workflow {workflow_id} is malformed: {e}") from e

    def load_graph(self, workflow_id: str) -> Optional[Graph]:
        try:
            return self.read_graph(workflow_id)
        except WorkflowNotFoundError as e:
            logger.warning(str(e))
            return None
        except WorkflowLoadError as e:
            logger.error(str(e))
            return None
