"""Spatial discretization helpers for method-of-lines PDEs."""

from diffeq_workshop.pde.operators import laplacian_2d, periodic_second_difference
from diffeq_workshop.pde.sparsity import jacobian_sparsity

__all__ = ["jacobian_sparsity", "laplacian_2d", "periodic_second_difference"]
