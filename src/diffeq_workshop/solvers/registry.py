"""Registry of integration methods and the backend that provides each of them."""

from __future__ import annotations

from dataclasses import dataclass

from diffeq_workshop.core.types import Backends, Families, SDETypes


@dataclass(frozen=True)
class MethodSpec:
    """
    Description of one integration method.

    Attributes:
        name: Name passed to ``solve``.
        backend: Library that performs the stepping.
        family: Equation family the method integrates.
        stiff: Suitable for stiff problems.
        adaptive: Controls its step size from an error estimate.
        description: One-line summary shown by the CLI.
    """

    name: str
    backend: Backends
    family: Families
    stiff: bool
    adaptive: bool
    description: str


_METHODS: list[MethodSpec] = [
    # scipy.integrate.solve_ivp
    MethodSpec("RK23", "scipy", "ode", False, True, "Bogacki-Shampine 3(2)"),
    MethodSpec("RK45", "scipy", "ode", False, True, "Dormand-Prince 5(4)"),
    MethodSpec("DOP853", "scipy", "ode", False, True, "Dormand-Prince 8(5,3), high accuracy"),
    MethodSpec("Radau", "scipy", "ode", True, True, "Implicit Runge-Kutta Radau IIA, order 5"),
    MethodSpec("BDF", "scipy", "ode", True, True, "Variable-order backward differentiation"),
    MethodSpec("LSODA", "scipy", "ode", True, True, "Adams/BDF with automatic stiffness switching"),
    # torchdiffeq.odeint
    MethodSpec("dopri5", "torchdiffeq", "ode", False, True, "Dormand-Prince 5(4) in torch"),
    MethodSpec("dopri8", "torchdiffeq", "ode", False, True, "Dormand-Prince 8(7) in torch"),
    MethodSpec("bosh3", "torchdiffeq", "ode", False, True, "Bogacki-Shampine 3(2) in torch"),
    MethodSpec("adaptive_heun", "torchdiffeq", "ode", False, True, "Heun 2(1) in torch"),
    MethodSpec("fehlberg2", "torchdiffeq", "ode", False, True, "Runge-Kutta-Fehlberg 2(1)"),
    MethodSpec("euler", "torchdiffeq", "ode", False, False, "Explicit Euler, fixed step"),
    MethodSpec("midpoint", "torchdiffeq", "ode", False, False, "Explicit midpoint, fixed step"),
    MethodSpec("rk4", "torchdiffeq", "ode", False, False, "Classic Runge-Kutta 4, fixed step"),
    MethodSpec("explicit_adams", "torchdiffeq", "ode", False, False, "Adams-Bashforth"),
    MethodSpec("implicit_adams", "torchdiffeq", "ode", False, False, "Adams-Bashforth-Moulton"),
    # torchsde.sdeint
    MethodSpec("euler", "torchsde", "sde", False, False, "Euler-Maruyama, strong order 0.5"),
    MethodSpec("milstein", "torchsde", "sde", False, False, "Milstein, strong order 1.0"),
    MethodSpec("srk", "torchsde", "sde", False, False, "Stochastic Runge-Kutta, strong order 1.5"),
    MethodSpec("euler_heun", "torchsde", "sde", False, False, "Euler-Heun (Stratonovich)"),
    MethodSpec("heun", "torchsde", "sde", False, False, "Heun (Stratonovich)"),
    MethodSpec("midpoint", "torchsde", "sde", False, False, "Midpoint (Stratonovich)"),
    MethodSpec("reversible_heun", "torchsde", "sde", False, False, "Reversible Heun (Stratonovich)"),
]

METHODS: dict[tuple[Families, str], MethodSpec] = {(m.family, m.name): m for m in _METHODS}

# torchsde methods by the stochastic calculus they integrate in
SDE_METHODS_BY_TYPE: dict[SDETypes, frozenset[str]] = {
    "ito": frozenset({"euler", "milstein", "srk"}),
    "stratonovich": frozenset({"euler_heun", "heun", "midpoint", "reversible_heun", "milstein"}),
}


def available(family: Families, backend: Backends | None = None) -> list[str]:
    """Names of all methods for a family, optionally restricted to one backend."""
    return [
        m.name
        for m in _METHODS
        if m.family == family and (backend is None or m.backend == backend)
    ]


def resolve(
    name: str,
    family: Families,
    backends: tuple[Backends, ...] | None = None,
) -> MethodSpec:
    """
    Look up a method for a family.

    Args:
        name: Method name.
        family: ``"ode"`` or ``"sde"``.
        backends: Restrict the lookup to these backends.

    Raises:
        ValueError: If the name is unknown for the family or its backend is not allowed.
    """
    spec = METHODS.get((family, name))
    if spec is None or (backends is not None and spec.backend not in backends):
        valid = [
            m.name
            for m in _METHODS
            if m.family == family and (backends is None or m.backend in backends)
        ]
        raise ValueError(
            f"{name!r} is not a valid {family.upper()} method here. "
            f"Valid values: {', '.join(repr(v) for v in valid)}."
        )
    return spec
