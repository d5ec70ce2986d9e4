"""Pipeline (bitrise.yml) model builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from ciscout.generation.steps import StepListItem

FORMAT_VERSION = "4"
DEFAULT_STEP_LIB_SOURCE = "https://github.com/bitrise-io/bitrise-steplib.git"

PRIMARY_WORKFLOW_ID = "primary"
DEPLOY_WORKFLOW_ID = "deploy"


@dataclass
class WorkflowBuilder:
    """Accumulates the steps of one workflow."""

    steps: List[StepListItem] = field(default_factory=list)
    summary: str = ""
    description: str = ""

    def generate(self) -> Dict[str, Any]:
        workflow: Dict[str, Any] = {}
        if self.summary:
            workflow["summary"] = self.summary
        if self.description:
            workflow["description"] = self.description
        workflow["steps"] = [dict(step) for step in self.steps]
        return workflow


class ConfigBuilder:
    """Builds a pipeline document workflow by workflow.

    Workflows are emitted in the order they were first touched.
    """

    def __init__(self) -> None:
        self._workflows: Dict[str, WorkflowBuilder] = {}

    def _workflow(self, workflow_id: str) -> WorkflowBuilder:
        if workflow_id not in self._workflows:
            self._workflows[workflow_id] = WorkflowBuilder()
        return self._workflows[workflow_id]

    def append_steps(self, workflow_id: str, *steps: StepListItem) -> "ConfigBuilder":
        self._workflow(workflow_id).steps.extend(steps)
        return self

    def set_workflow_summary(self, workflow_id: str, summary: str) -> "ConfigBuilder":
        self._workflow(workflow_id).summary = summary
        return self

    def set_workflow_description(self, workflow_id: str, description: str) -> "ConfigBuilder":
        self._workflow(workflow_id).description = description
        return self

    def generate(
        self,
        project_type: str,
        app_envs: Optional[List[Dict[str, str]]] = None,
    ) -> Dict[str, Any]:
        """Assemble the pipeline document.

        Args:
            project_type: Value of the ``project_type`` key.
            app_envs: App level environment items, ``[{KEY: value}, ...]``.

        Returns:
            Pipeline document as an ordered dict.

        Raises:
            ValueError: If the primary workflow has no steps.
        """
        primary = self._workflows.get(PRIMARY_WORKFLOW_ID)
        if primary is None or not primary.steps:
            raise ValueError("primary workflow not defined")

        data: Dict[str, Any] = {
            "format_version": FORMAT_VERSION,
            "default_step_lib_source": DEFAULT_STEP_LIB_SOURCE,
            "project_type": project_type,
        }
        if app_envs:
            data["app"] = {"envs": [dict(env) for env in app_envs]}
        data["trigger_map"] = [
            {"push_branch": "*", "workflow": PRIMARY_WORKFLOW_ID},
            {"pull_request_source_branch": "*", "workflow": PRIMARY_WORKFLOW_ID},
        ]
        data["workflows"] = {
            workflow_id: builder.generate()
            for workflow_id, builder in self._workflows.items()
        }
        return data


def to_yaml(data: Dict[str, Any]) -> str:
    """Serialize a pipeline document the way it is stored in a ConfigMap."""
    return yaml.dump(
        data,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )
