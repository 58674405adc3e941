"""Workflow orchestration for committing imports and driving the wizard."""

from .committer import ImportCommitter, payload_to_rows, rows_to_payload
from .wizard import ImportWizard, WizardStage, WizardState, WizardTransitionError

__all__ = [
    "ImportCommitter",
    "ImportWizard",
    "WizardStage",
    "WizardState",
    "WizardTransitionError",
    "payload_to_rows",
    "rows_to_payload",
]
