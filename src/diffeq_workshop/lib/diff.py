"""Autograd helpers.

Thin wrappers over ``torch.autograd.grad`` used to turn scalar functions
(Hamiltonians, losses) into vector fields without repeating boilerplate.
"""

import torch
from torch import Tensor


def grad(
    u: Tensor,
    x: Tensor,
    *,
    create_graph: bool = True,
) -> Tensor:
    """Compute the gradient ∇u with respect to *x*.

    Args:
        u: Scalar (or batch of scalars, summed) depending on ``x``.
        x: Input tensor with ``requires_grad=True``.
        create_graph: Keep the result in the computation graph (default ``True``).

    Returns:
        Tensor shaped like ``x``.
    """
    (grad_u,) = torch.autograd.grad(
        u.reshape(-1).sum(),
        x,
        create_graph=create_graph,
    )
    return grad_u
