"""Shared utilities for twomix examples."""

import json
from argparse import ArgumentParser, Namespace
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jax
import jax.numpy as jnp
import matplotlib.pyplot as plt
import numpy as np
from jax import Array
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from numpy.typing import NDArray

# One color per density curve: truth, EM fit, reference fit
colors = {
    "ground_truth": "#000000",  # black
    "fitted": "#E24A33",  # red
    "reference": "#8EBA42",  # green
}


@dataclass(frozen=True)
class ExamplePaths:
    """Manages paths for example outputs."""

    example_name: str
    results_dir: Path
    style_path: Path

    @property
    def analysis_path(self) -> Path:
        return self.results_dir / "analysis.json"

    @property
    def plot_path(self) -> Path:
        return self.results_dir / "plot.png"

    def save_analysis(self, results: Any) -> None:
        self.results_dir.mkdir(parents=True, exist_ok=True)
        with open(self.analysis_path, "w") as f:
            json.dump(results, f, indent=2)

    def load_analysis(self) -> Any:
        with open(self.analysis_path) as f:
            return json.load(f)

    def save_plot(self, fig: Figure) -> None:
        self.results_dir.mkdir(parents=True, exist_ok=True)
        fig.savefig(self.plot_path, bbox_inches="tight")
        plt.close(fig)


def example_paths(module_path: str | Path) -> ExamplePaths:
    """Create ExamplePaths from a module's __file__."""
    module_path = Path(module_path)
    example_name = module_path.parent.name
    project_root = module_path.parents[2]
    results_dir = project_root / "results" / example_name
    return ExamplePaths(
        example_name=example_name,
        results_dir=results_dir,
        style_path=project_root / "examples" / "default.mplstyle",
    )


def initialize_jax(
    device: str = "cpu", disable_jit: bool = False, enable_x64: bool = True
) -> None:
    """Initialize JAX configuration."""
    jax.config.update("jax_platform_name", device)
    jax.config.update("jax_enable_x64", enable_x64)
    if disable_jit:
        jax.config.update("jax_disable_jit", True)


def example_parser(description: str) -> ArgumentParser:
    """Argument parser with the JAX flags shared by all examples."""
    parser = ArgumentParser(description=description)
    parser.add_argument("--device", default="cpu", help="JAX platform to run on")
    parser.add_argument(
        "--disable-jit", action="store_true", help="Run without JIT compilation"
    )
    parser.add_argument(
        "--float32", action="store_true", help="Use single instead of double precision"
    )
    return parser


def jax_cli(parser: ArgumentParser) -> Namespace:
    """Parse arguments and configure JAX accordingly."""
    args = parser.parse_args()
    initialize_jax(args.device, args.disable_jit, enable_x64=not args.float32)
    return args


def apply_style(paths: ExamplePaths) -> None:
    """Apply the default matplotlib style for consistent plots."""
    plt.style.use(str(paths.style_path))


# Grid utilities


def get_plot_range(
    sample: Array, margin: float = 0.2, n_points: int = 200
) -> Array:
    """Evenly spaced evaluation points covering the sample with a margin."""
    lo, hi = jnp.min(sample), jnp.max(sample)
    pad = margin * (hi - lo)
    return jnp.linspace(lo - pad, hi + pad, n_points)


# Common plotting functions


def plot_density_curves(
    ax: Axes,
    xs: NDArray[np.float64],
    densities: list[NDArray[np.float64]],
    labels: list[str],
    sample: NDArray[np.float64] | None = None,
    plot_colors: list[str] | None = None,
) -> None:
    """Plot 1-D densities with an optional sample histogram underneath."""
    if plot_colors is None:
        plot_colors = list(colors.values())

    if sample is not None:
        ax.hist(sample, bins=40, density=True, alpha=0.3, label="Sample")

    for density, label, color in zip(densities, labels, plot_colors):
        ax.plot(xs, density, color=color, label=label)

    ax.set_xlabel("x")
    ax.set_ylabel("Density")
    ax.legend()


def plot_training_history(
    ax: Axes,
    histories: dict[str, list[float]],
    ylabel: str = "Log Likelihood",
) -> None:
    """Plot log-likelihood traces, colored like the corresponding density curves."""
    trace_colors = [colors["fitted"], colors["reference"]]
    for (name, history), color in zip(histories.items(), trace_colors):
        ax.plot(history, label=name, color=color)

    ax.set_xlabel("Step")
    ax.set_ylabel(ylabel)
    ax.legend()
    ax.grid(True, alpha=0.3)
