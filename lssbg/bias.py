"""Tracer bias inputs for the relativistic terms G1 and G2.

The background engine does not build these interpolants; they are supplied
by the caller for the two tracer populations of a correlation function and
only read here.
"""

from dataclasses import dataclass

from .interpolation import Interpolant, constant_interpolant


@dataclass(frozen=True)
class TracerBiases:
    """Bias interpolants b(z), s(z), f_evo(z) of one tracer population.

    Attributes:
        matter_bias: Linear matter bias b(z)
        magnification_bias: Magnification bias s(z)
        evolution_bias: Evolution bias f_evo(z)
    """

    matter_bias: Interpolant
    magnification_bias: Interpolant
    evolution_bias: Interpolant

    @classmethod
    def constant(
        cls,
        matter_bias: float = 1.0,
        magnification_bias: float = 0.0,
        evolution_bias: float = 0.0,
        z_max: float = 15.0,
    ) -> "TracerBiases":
        """Redshift-independent biases on [0, z_max]."""
        return cls(
            matter_bias=constant_interpolant(matter_bias, 0.0, z_max, "matter_bias"),
            magnification_bias=constant_interpolant(
                magnification_bias, 0.0, z_max, "magnification_bias"
            ),
            evolution_bias=constant_interpolant(
                evolution_bias, 0.0, z_max, "evolution_bias"
            ),
        )


@dataclass(frozen=True)
class BiasProvider:
    """Biases for the two sources entering G1 (first) and G2 (second)."""

    first: TracerBiases
    second: TracerBiases

    @classmethod
    def identical(cls, biases: TracerBiases) -> "BiasProvider":
        """Auto-correlation setup: both sources share the same biases."""
        return cls(first=biases, second=biases)

    def __iter__(self):
        yield self.first
        yield self.second
