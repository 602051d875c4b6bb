"""Translate workflow loading and validation errors to user-friendly messages."""

import re
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class UserFriendlyError:
    """User-friendly error representation."""
    original_error: Exception
    title: str
    explanation: str
    actions: List[str]
    documentation: Optional[str] = None
    show_technical: bool = False


class WorkflowValidationError(ValueError):
    """Single validation message wrapped so it can be translated."""


class ErrorTranslator:
    """Translate technical errors to user-friendly messages."""

    ERROR_PATTERNS = {
        r"Workflow has no nodes": {
            "title": "Workflow is empty",
            "explanation": "The workflow document defines no nodes, so there is nothing to run.",
            "actions": [
                "Add at least one node to the nodes list",
                "Check the file is the workflow you meant to load",
            ],
        },

        r"references unknown (source|target) node": {
            "title": "Edge points at a missing node",
            "explanation": "An edge connects to a node id that is not declared in the workflow.",
            "actions": [
                "Fix the edge's source/target to an existing node id",
                "Or add the missing node",
            ],
            "documentation": "docs/WORKFLOWS.md#edges",
        },

        # Must precede the generic cycle pattern
        r"no entry nodes": {
            "title": "Workflow has no starting point",
            "explanation": "Every node has an incoming edge, so no node can run first. This usually means the graph loops back on itself.",
            "actions": [
                "Make sure at least one node has no incoming edges",
                "Remove the edge that closes the loop",
            ],
            "documentation": "docs/WORKFLOWS.md#entry-nodes",
        },

        r"contains a cycle": {
            "title": "Workflow contains a loop",
            "explanation": "Some nodes depend on each other in a circle, so they can never become ready.",
            "actions": [
                "Run: dagflow plan <workflow> to see which nodes are ordered",
                "Remove one edge from the loop",
            ],
            "documentation": "docs/WORKFLOWS.md#cycles",
        },

        r"Unreachable nodes": {
            "title": "Some nodes can never run",
            "explanation": "These nodes are not connected to any starting node.",
            "actions": [
                "Connect them with an edge from a reachable node",
                "Or delete them from the workflow",
            ],
        },

        r"WorkflowNotFoundError|not found": {
            "title": "Workflow not found",
            "explanation": "No workflow document with that id exists in the workflows directory.",
            "actions": [
                "Check the id matches <id>.json, <id>.yaml or <id>.yml",
                "Check workflows_dir in dagflow.yaml or pass --workspace",
            ],
        },

        r"not valid (JSON|YAML)": {
            "title": "Workflow file has a syntax error",
            "explanation": "The workflow document could not be parsed.",
            "actions": [
                "Fix the syntax error reported below",
                "Validate the file with a JSON/YAML linter",
            ],
            "documentation": "docs/WORKFLOWS.md#format",
        },

        r"schema validation|Duplicate node id|schema version|malformed": {
            "title": "Workflow document is invalid",
            "explanation": "The document parsed, but its nodes or edges don't match the workflow format.",
            "actions": [
                "Check every node has an id and a type (agent, condition, parallel, merge)",
                "Check node ids are unique",
                "Check conditionBranch is \"true\" or \"false\"",
            ],
            "documentation": "docs/WORKFLOWS.md#format",
        },
    }

    def translate(self, error: Exception) -> UserFriendlyError:
        """Convert exception to user-friendly format."""
        error_str = str(error)
        error_type = type(error).__name__
        full_error = f"{error_type}: {error_str}"

        for pattern, translation in self.ERROR_PATTERNS.items():
            if re.search(pattern, full_error, re.IGNORECASE):
                return UserFriendlyError(
                    original_error=error,
                    title=translation["title"],
                    explanation=translation["explanation"],
                    actions=translation["actions"],
                    documentation=translation.get("documentation"),
                    show_technical=error_type != WorkflowValidationError.__name__,
                )

        # Fallback for unknown errors
        return UserFriendlyError(
            original_error=error,
            title="Unexpected error",
            explanation=error_str,
            actions=[
                "Check logs for details",
                "Re-run with --log-level DEBUG",
            ],
            show_technical=True,
        )

    def translate_validation(self, errors: List[str]) -> List[UserFriendlyError]:
        """Translate every message of a ValidationResult."""
        return [self.translate(WorkflowValidationError(message)) for message in errors]

    def format_for_cli(self, friendly_error: UserFriendlyError) -> str:
        """Format error for CLI display."""
        output = f"[bold red]{friendly_error.title}[/]\n\n"
        output += f"{friendly_error.explanation}\n\n"

        output += "[bold]How to fix:[/]\n"
        for i, action in enumerate(friendly_error.actions, 1):
            output += f"  {i}. {action}\n"

        if friendly_error.documentation:
            output += f"\n[dim]📖 Learn more: {friendly_error.documentation}[/]"

        if friendly_error.show_technical:
            output += f"\n\n[dim]Technical details:[/]\n[dim]{friendly_error.original_error}[/]"

        return output
