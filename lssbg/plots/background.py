"""Diagnostic figures of a background table."""

from typing import Optional, Sequence, Tuple
import numpy as np
from numpy.typing import NDArray

from ..background import BackgroundTable
from ..utils.config import CosmologicalParameters


LABELS = {
    "a": r"$a$",
    "H": r"$H/H_0$",
    "conformal_H": r"$\mathcal{H}/H_0$",
    "conformal_H_prime": r"$\mathcal{H}'/H_0^2$",
    "D1": r"$D_1$",
    "f": r"$f$",
    "g": r"$g = (1+z) D_1$",
    "comoving_distance": r"$\chi\ [c/H_0]$",
    "G1": r"$G_1$",
    "G2": r"$G_2$",
}


def growth_index_approximation(
    z: NDArray[np.floating],
    table: BackgroundTable,
    params: CosmologicalParameters,
    gamma: float = 0.55,
) -> NDArray[np.floating]:
    """f(z) ≈ Ω_m(z)^γ with Ω_m(z) = Ω_m (1+z)³ / E(z)²."""
    H = table.H(z)
    Omega_m_z = params.Omega_m * (1 + z) ** 3 / H**2
    return Omega_m_z**gamma


def plot_background_table(
    table: BackgroundTable,
    names: Sequence[str] = ("H", "conformal_H", "D1", "f", "comoving_distance", "G1"),
    z_max: Optional[float] = None,
    n_points: int = 200,
    ncols: int = 3,
    figsize: Optional[Tuple[float, float]] = None,
):
    """Plot selected table functions against redshift.

    Args:
        table: Background table
        names: Table functions to draw, one panel each
        z_max: Maximum redshift (defaults to the table bound)
        n_points: Number of evaluation points
        ncols: Panels per row
        figsize: Figure size

    Returns:
        Matplotlib figure
    """
    import matplotlib.pyplot as plt

    z_max = table.z_max if z_max is None else min(z_max, table.z_max)
    z = np.linspace(0.0, z_max, n_points)

    nrows = int(np.ceil(len(names) / ncols))
    if figsize is None:
        figsize = (4 * ncols, 3.2 * nrows)
    fig, axes = plt.subplots(nrows, ncols, figsize=figsize, squeeze=False)

    for ax, name in zip(axes.flat, names):
        ax.plot(z, table.evaluate(name, z), 'b-', lw=2)
        z_samples, y_samples = table.samples(name)
        mask = z_samples <= z_max
        ax.plot(z_samples[mask], y_samples[mask], 'k.', ms=3, alpha=0.5)
        ax.set_xlabel('Redshift $z$', fontsize=11)
        ax.set_ylabel(LABELS.get(name, name), fontsize=11)
        ax.set_xlim(0, z_max)
        ax.grid(True, alpha=0.3)

    for ax in list(axes.flat)[len(names):]:
        ax.set_visible(False)

    fig.tight_layout()
    return fig


def plot_growth(
    table: BackgroundTable,
    params: CosmologicalParameters,
    ax=None,
    z_max: float = 5.0,
    figsize: Tuple[float, float] = (8, 5),
):
    """Plot D1(z) and f(z) with the Ω_m(z)^0.55 approximation.

    Returns:
        Matplotlib axes object
    """
    import matplotlib.pyplot as plt

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    z_max = min(z_max, table.z_max)
    z = np.linspace(0.0, z_max, 200)

    ax.plot(z, table.D1(z) / table.D1(0.0), 'b-', lw=2, label=r'$D_1(z)/D_1(0)$')
    ax.plot(z, table.f(z), 'r-', lw=2, label=r'$f(z)$')
    ax.plot(z, growth_index_approximation(z, table, params), 'r:', lw=2,
            label=r'$\Omega_m(z)^{0.55}$')

    ax.set_xlabel('Redshift $z$', fontsize=12)
    ax.set_title('Linear growth', fontsize=12)
    ax.set_xlim(0, z_max)
    ax.legend(loc='best', fontsize=10)
    ax.grid(True, alpha=0.3)

    return ax
