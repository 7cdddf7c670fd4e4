"""Process workload engine.

Models a business workflow as a typed graph of steps and provides:
- annualized workload figures per step, per step kind and in total
- undo/redo editing sessions over the graph
- improvement suggestions and what-if simulation of their effect
"""

__version__ = "0.1.0"

from process_workload.graph.session import GraphSession
from process_workload.graph.steps import Step, StepKind, create_step
from process_workload.workload.annualizer import AnnualizationConfig, annualize

__all__ = [
    "__version__",
    "AnnualizationConfig",
    "GraphSession",
    "Step",
    "StepKind",
    "annualize",
    "create_step",
]
