from .driver import (
    FitConfig,
    FitResult,
    FitState,
    FitStatus,
    em_iteration,
    fit,
    fit_restarts,
    has_converged,
    initial_state,
    next_status,
)
from .errors import (
    CollapsedComponent,
    DegenerateInitialization,
    InvalidParameter,
    InvalidSample,
    MixtureError,
    NotConverged,
    NumericalUnderflow,
)
from .expectation import Expectation, UnderflowPolicy, expectation_step
from .initialization import (
    initialize,
    kmeans,
    kmeans_initialization,
    parameters_from_labels,
    sorted_halves_initialization,
)
from .maximization import maximization_step
from .parameters import (
    ComponentParameters,
    as_sample,
    assign,
    density,
    log_density,
    sample,
    weighted_log_densities,
)

__all__ = [
    "CollapsedComponent",
    "ComponentParameters",
    "DegenerateInitialization",
    "Expectation",
    "FitConfig",
    "FitResult",
    "FitState",
    "FitStatus",
    "InvalidParameter",
    "InvalidSample",
    "MixtureError",
    "NotConverged",
    "NumericalUnderflow",
    "UnderflowPolicy",
    "as_sample",
    "assign",
    "density",
    "em_iteration",
    "expectation_step",
    "fit",
    "fit_restarts",
    "has_converged",
    "initial_state",
    "initialize",
    "kmeans",
    "kmeans_initialization",
    "log_density",
    "maximization_step",
    "next_status",
    "parameters_from_labels",
    "sample",
    "sorted_halves_initialization",
    "weighted_log_densities",
]
