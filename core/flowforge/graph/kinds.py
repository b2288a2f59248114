"""
Node kinds and the static table that describes each one.

This module has no flowforge imports. node.py, catalog.py and handlers.py
all read the table from here.
"""

from dataclasses import dataclass, field
from enum import StrEnum


class NodeKind(StrEnum):
    """Closed set of node kinds."""

    # Flow markers
    START = "START"
    END = "END"

    # General-purpose
    TASK = "TASK"
    CONDITION = "CONDITION"
    PREDICTION = "PREDICTION"
    ANALYSIS = "ANALYSIS"
    DATA = "DATA"
    OUTPUT = "OUTPUT"

    # Machine learning pipeline stages
    TRAINING = "TRAINING"
    VALIDATION = "VALIDATION"
    TESTING = "TESTING"
    PREPROCESSING = "PREPROCESSING"
    FEATURE_ENGINEERING = "FEATURE_ENGINEERING"
    MODEL_SELECTION = "MODEL_SELECTION"
    EVALUATION = "EVALUATION"
    INFERENCE = "INFERENCE"
    CLUSTERING = "CLUSTERING"
    GNN_MODULE = "GNN_MODULE"
    ENSEMBLE = "ENSEMBLE"
    MONITORING = "MONITORING"
    EXPLAINABILITY = "EXPLAINABILITY"
    HYPERPARAMETER_TUNING = "HYPERPARAMETER_TUNING"


@dataclass(frozen=True)
class KindSpec:
    """Static description of one node kind."""

    display_name: str
    parameter_label: str = "Details"
    default_parameter: str = ""
    requires_parameter: bool = False
    passive: bool = False
    required_out_degree: int | None = None
    operations: frozenset[str] = field(default_factory=frozenset)
    supports_any_operation: bool = False


NODE_CATALOG: dict[NodeKind, KindSpec] = {
    # Flow markers and passive data carriers
    NodeKind.START: KindSpec("Start", passive=True),
    NodeKind.END: KindSpec("End", passive=True),
    NodeKind.DATA: KindSpec("Data", passive=True),
    NodeKind.OUTPUT: KindSpec("Output", passive=True),
    # General-purpose
    NodeKind.TASK: KindSpec(
        "Task",
        parameter_label="Task details",
        default_parameter="Default Task Details",
        requires_parameter=True,
        required_out_degree=1,
    ),
    NodeKind.CONDITION: KindSpec(
        "Condition",
        parameter_label="Expression",
        requires_parameter=True,
        required_out_degree=2,
    ),
    NodeKind.PREDICTION: KindSpec(
        "Prediction",
        parameter_label="Model",
        requires_parameter=True,
        required_out_degree=1,
    ),
    NodeKind.ANALYSIS: KindSpec(
        "Analysis",
        parameter_label="Analysis type",
        default_parameter="Statistical",
        requires_parameter=True,
    ),
    # Machine learning pipeline stages
    NodeKind.TRAINING: KindSpec("Training", operations=frozenset({"train"})),
    NodeKind.VALIDATION: KindSpec("Validation"),
    NodeKind.TESTING: KindSpec("Testing"),
    NodeKind.PREPROCESSING: KindSpec(
        "Preprocessing",
        parameter_label="Steps",
        default_parameter="default",
        requires_parameter=True,
    ),
    NodeKind.FEATURE_ENGINEERING: KindSpec("Feature Engineering"),
    NodeKind.MODEL_SELECTION: KindSpec(
        "Model Selection",
        parameter_label="Selection criteria",
        default_parameter="accuracy",
        requires_parameter=True,
    ),
    NodeKind.EVALUATION: KindSpec(
        "Evaluation",
        parameter_label="Metric",
        default_parameter="accuracy",
        requires_parameter=True,
    ),
    NodeKind.INFERENCE: KindSpec("Inference", supports_any_operation=True),
    NodeKind.CLUSTERING: KindSpec(
        "Clustering",
        parameter_label="Method",
        requires_parameter=True,
    ),
    NodeKind.GNN_MODULE: KindSpec("GNN Module"),
    NodeKind.ENSEMBLE: KindSpec(
        "Ensemble",
        parameter_label="Strategy",
        default_parameter="Default strategy",
        requires_parameter=True,
    ),
    NodeKind.MONITORING: KindSpec("Monitoring"),
    NodeKind.EXPLAINABILITY: KindSpec("Explainability"),
    NodeKind.HYPERPARAMETER_TUNING: KindSpec("Hyperparameter Tuning"),
}

_missing = set(NodeKind) - set(NODE_CATALOG)
if _missing:
    raise RuntimeError(f"NODE_CATALOG is missing kinds: {sorted(_missing)}")


def kind_spec(kind: NodeKind) -> KindSpec:
    """Get the catalog entry for a kind."""
    return NODE_CATALOG[kind]
