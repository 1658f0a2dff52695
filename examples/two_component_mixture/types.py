"""Result types for the two-component mixture example."""

from typing import Any, TypedDict


class ScenarioResults(TypedDict):
    """Fit of one synthetic data set by twomix and by sklearn."""

    name: str
    sample: list[float]
    plot_xs: list[float]  # Evaluation points for densities
    ground_truth: dict[str, float]  # Flattened ComponentParameters
    initial: dict[str, float]  # Parameters after initialization
    fit: dict[str, Any]  # FitResult.summary()
    sklearn: dict[str, float]  # Sklearn estimate, same keys as ground_truth
    sklearn_converged: bool
    sklearn_iterations: int
    ground_truth_densities: list[float]
    fitted_densities: list[float]
    sklearn_densities: list[float]
    training_lls: list[float]  # Log likelihood after every E-step


class MixtureResults(TypedDict):
    """Complete results for the two-component mixture example."""

    tol: float
    max_iter: int
    scenarios: list[ScenarioResults]
