"""Minimal inversion-of-control container.

This package maps contract types (base classes, ABCs or protocols) to
implementation types and builds whole dependency graphs from a single
`resolve` call by injecting constructor parameters by their annotated type.

Exports:
- `Container`: registers contracts and resolves them with constructor injection.
- `Lifetime`: `TRANSIENT` (new instance per resolve) or `SINGLETON` (one cached instance).
- `Module`: protocol for objects that group registrations, used with `Container.install`.
- `register_subclasses`: registers every loaded concrete subclass of some base classes.
- `ResolutionError` / `UnregisteredContractError`: resolution failures.
"""

from ._container import Container, Lifetime, Registration, ResolutionError, UnregisteredContractError
from ._module import Module, register_subclasses


__all__ = [
    "Container",
    "Lifetime",
    "Module",
    "Registration",
    "ResolutionError",
    "UnregisteredContractError",
    "register_subclasses",
]
