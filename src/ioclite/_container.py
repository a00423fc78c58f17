from __future__ import annotations

import inspect
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    TypeVar,
    cast,
    get_type_hints,
    overload,
)

from ._conformance import check_class, check_instance


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ._module import Module

    T = TypeVar("T")

    RegistrationSpec = tuple[type, type] | tuple[type, type, "Lifetime"]


class Lifetime(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class Registration:
    impl: type | None
    factory: Callable[[Container], object] | None
    lifetime: Lifetime


class ResolutionError(RuntimeError):
    pass


class UnregisteredContractError(ResolutionError, LookupError):
    """Raised when a contract, requested directly or as a constructor dependency, has no registration."""

    def __init__(self, contract: object) -> None:
        self.contract = contract
        super().__init__(f"Unable to resolve implementation for contract {_type_name(contract)}")


class Container:
    """Minimal IoC container.

    - map contract types to implementation types or factories
    - resolve with constructor injection, recursively
    - lifetimes: transient (default) / singleton
    - batch registration through modules.
    """

    def __init__(self) -> None:
        self._registrations: dict[type, Registration] = {}
        self._singletons: dict[type, object] = {}
        self._lock = threading.RLock()

    @overload
    def register(
        self,
        contract: type[T],
        impl: type[T],
        *,
        factory: None = ...,
        lifetime: Lifetime = Lifetime.TRANSIENT,
    ) -> None: ...

    @overload
    def register(
        self,
        contract: type[T],
        impl: None = ...,
        *,
        factory: Callable[[Container], T],
        lifetime: Lifetime = Lifetime.TRANSIENT,
    ) -> None: ...

    def register(
        self,
        contract: type[T],
        impl: type | None = None,
        *,
        factory: Callable[[Container], Any] | None = None,
        lifetime: Lifetime = Lifetime.TRANSIENT,
    ) -> None:
        """Register an implementation type or a factory for a contract.

        A later registration for the same contract replaces the earlier one and
        drops any singleton already built for it.

        Example:
          container.register(IFoo, FooImpl)
          container.register(IDb, factory=lambda c: Db(c.resolve(Settings)), lifetime=Lifetime.SINGLETON)

        """
        if impl is not None and factory is not None:
            msg = "Provide either `impl` or `factory`, not both."
            raise ValueError(msg)

        if impl is None and factory is None:
            msg = "Either `impl` or `factory` must be provided."
            raise ValueError(msg)

        if impl is not None:
            if not inspect.isclass(impl):
                msg = f"Implementation {impl!r} must be a class"
                raise TypeError(msg)
            _require_class(contract)
            check_class(contract, impl)
        else:
            _require_class(contract)

        with self._lock:
            self._registrations[contract] = Registration(impl=impl, factory=factory, lifetime=lifetime)
            self._singletons.pop(contract, None)

        logger.debug(
            "registered %s -> %s (%s)",
            _type_name(contract),
            _type_name(impl) if impl is not None else "<factory>",
            lifetime.value,
        )

    def register_instance(self, contract: type[T], instance: object) -> None:
        """Register a pre-built instance (always singleton)."""
        _require_class(contract)
        check_instance(contract, instance)

        with self._lock:
            self._registrations[contract] = Registration(impl=None, factory=None, lifetime=Lifetime.SINGLETON)
            self._singletons[contract] = instance

        logger.debug("registered instance of %s for %s", type(instance).__name__, _type_name(contract))

    def register_all(self, registrations: Iterable[RegistrationSpec]) -> None:
        """Register several `(contract, impl)` or `(contract, impl, lifetime)` tuples at once."""
        for contract, impl, *rest in registrations:
            if rest:
                self.register(contract, impl, lifetime=rest[0])
            else:
                self.register(contract, impl)

    def install(self, module: Module) -> None:
        """Let `module` add its registrations to this container."""
        logger.debug("installing module %s", type(module).__name__)
        module.register_components(self)

    def lookup(self, contract: type) -> Registration | None:
        return self._registrations.get(contract)

    def is_registered(self, contract: type) -> bool:
        return contract in self._registrations

    def resolve(self, contract: type[T]) -> T:
        """Resolve the contract to an instance.

        - The contract must be registered; otherwise `UnregisteredContractError`.
        - Singletons come from the cache once built.
        - Implementation types are built by resolving their `__init__` parameters
          by annotated type, depth-first.
        """
        with self._lock:
            reg = self._registrations.get(contract)
            if reg is None:
                raise UnregisteredContractError(contract)

            # Return cached singleton if present
            if reg.lifetime is Lifetime.SINGLETON and contract in self._singletons:
                return cast("T", self._singletons[contract])

            if reg.factory is not None:
                instance = reg.factory(self)
                self._validate_factory_result(contract, instance)
            else:
                instance = self._construct(cast("type", reg.impl))

            # First cached instance wins
            if reg.lifetime is Lifetime.SINGLETON:
                instance = self._singletons.setdefault(contract, instance)

            return cast("T", instance)

    def _construct(self, cls: type[T]) -> T:
        return Constructor(self).construct(cls)

    def resolve_param(self, cls: type, p: inspect.Parameter, hints: dict[str, Any]) -> Any:
        """Resolving param.

        Resolution precedence:
        1. registration for the annotated type
        2. default
        3. nested resolve of the annotated type (raises for an unregistered type)
        4. error for a parameter with neither annotation nor default.
        """
        ann = hints.get(p.name, inspect.Parameter.empty)
        has_default = p.default is not inspect.Parameter.empty

        if ann is not inspect.Parameter.empty:
            if self._is_registered_hint(ann) or not has_default:
                return self.resolve(ann)
            return p.default

        if has_default:
            return p.default

        msg = (
            f"Cannot satisfy constructor parameter '{p.name}' for {cls.__name__}. "
            "It has no type annotation and no default."
        )
        raise ResolutionError(msg)

    def _is_registered_hint(self, ann: Any) -> bool:
        try:
            return ann in self._registrations
        except TypeError:
            # unhashable annotation
            return False

    def _validate_factory_result(self, contract: type, instance: object) -> None:
        try:
            check_instance(contract, instance)
        except TypeError as e:
            msg = f"Factory for {_type_name(contract)} returned an object that does not satisfy it: {e}"
            raise TypeError(msg) from e


def _require_class(contract: object) -> None:
    if not inspect.isclass(contract):
        msg = f"Contract {contract!r} must be a class"
        raise TypeError(msg)


class Constructor:
    """Builds an implementation type by resolving its constructor parameters through the container."""

    def __init__(self, resolver: Container) -> None:
        self._resolver = resolver

    def construct(self, cls: type[T]) -> T:
        try:
            sig = inspect.signature(cls)
        except ValueError:
            # some builtins expose no signature
            sig = inspect.Signature()

        params = [p for p in sig.parameters.values() if p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)]
        if not params:
            logger.debug("constructing %s with no arguments", cls.__name__)
            return cls()

        hints = _get_constructor_type_hints(cls)

        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for p in params:
            value = self._resolver.resolve_param(cls, p, hints)
            if p.kind is p.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[p.name] = value

        logger.debug("constructing %s with %d injected argument(s)", cls.__name__, len(params))
        return cls(*args, **kwargs)


def _get_constructor_type_hints(cls: type) -> dict[str, Any]:
    # NamedTuple and similar types declare their parameters on __new__
    target = cls.__new__ if cls.__init__ is object.__init__ else cls.__init__  # type: ignore[misc]
    try:
        hints = get_type_hints(target)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, cls.__name__, cls.__qualname__)
        hints = {}

    return hints


def _type_name(tp: object) -> str:
    return getattr(tp, "__qualname__", None) or repr(tp)
