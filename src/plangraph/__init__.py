"""plangraph - MySQL EXPLAIN plans as laid-out, cost-annotated graphs."""

__version__ = "0.1.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from plangraph.exceptions import (
    ConfigurationError,
    CorruptFieldError,
    MalformedInputError,
    MissingFieldError,
    ParseError,
    PlanGraphError,
    ResourceLimitError,
)

from plangraph.config import (
    Config,
    LayoutConfig,
    ParserConfig,
    get_config,
)
from plangraph.engine import PlanGraphService, build_plan_graph
from plangraph.graph import (
    AccessType,
    CorruptField,
    Edge,
    NodeKind,
    PlanGraph,
    PlanNode,
    Position,
    compute_layout,
    mark_critical_path,
)
from plangraph.parser import (
    ExplainDocument,
    ValidationResult,
    parse_explain,
    validate_explain_json,
)

__all__ = [
    # Exception hierarchy
    "PlanGraphError",
    "ParseError",
    "MalformedInputError",
    "MissingFieldError",
    "ResourceLimitError",
    "CorruptFieldError",
    "ConfigurationError",
    # Core
    "PlanGraphService",
    "build_plan_graph",
    "parse_explain",
    "validate_explain_json",
    "compute_layout",
    "mark_critical_path",
    # Models
    "AccessType",
    "CorruptField",
    "Edge",
    "ExplainDocument",
    "NodeKind",
    "PlanGraph",
    "PlanNode",
    "Position",
    "ValidationResult",
    # Configuration
    "Config",
    "LayoutConfig",
    "ParserConfig",
    "get_config",
    # Metadata
    "__version__",
    "__license__",
]
