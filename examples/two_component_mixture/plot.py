"""Plotting for the two-component mixture example."""

from typing import cast

import matplotlib.pyplot as plt
import numpy as np

from ..shared import (
    apply_style,
    example_paths,
    plot_density_curves,
    plot_training_history,
)
from .types import MixtureResults


def main():
    paths = example_paths(__file__)
    apply_style(paths)

    results = cast(MixtureResults, paths.load_analysis())
    scenarios = results["scenarios"]

    fig, axes = plt.subplots(
        2, len(scenarios), figsize=(5 * len(scenarios), 8), squeeze=False
    )

    for col, scenario in enumerate(scenarios):
        ax_dens, ax_ll = axes[0, col], axes[1, col]

        plot_density_curves(
            ax_dens,
            np.array(scenario["plot_xs"]),
            [
                np.array(scenario["ground_truth_densities"]),
                np.array(scenario["fitted_densities"]),
                np.array(scenario["sklearn_densities"]),
            ],
            ["Ground Truth", "EM", "Sklearn"],
            np.array(scenario["sample"]),
        )
        ax_dens.set_title(f"{scenario['name'].capitalize()} ({scenario['fit']['status']})")

        plot_training_history(ax_ll, {"EM": scenario["training_lls"]})
        ax_ll.set_title(f"{scenario['fit']['iterations']} Iterations")

    plt.tight_layout()
    paths.save_plot(fig)
    print(f"Plot saved to {paths.plot_path}")


if __name__ == "__main__":
    main()
