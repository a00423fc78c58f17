"""Checks that an implementation class or instance satisfies a contract type.

Ordinary classes and ABCs are checked nominally. Protocols are checked nominally
first and then structurally: every public member declared on the protocol or one of
its parent protocols must exist, and declared methods must accept the protocol's
required positional arguments and return a compatible type.
"""

from __future__ import annotations

import dataclasses
import inspect
import typing
from typing import TYPE_CHECKING, Any, Generic, Protocol


if TYPE_CHECKING:
    from collections.abc import Callable


_IGNORED_BASES = (object, Protocol, Generic)


def is_protocol(tp: object) -> bool:
    if hasattr(typing, "is_protocol"):
        return inspect.isclass(tp) and typing.is_protocol(tp)
    return inspect.isclass(tp) and tp not in _IGNORED_BASES and bool(tp.__dict__.get("_is_protocol", False))


def is_runtime_checkable(tp: type) -> bool:
    if not is_protocol(tp):
        return False

    try:
        isinstance(None, tp)
    except TypeError:
        return False
    else:
        return True


def check_class(contract: type, impl: type) -> None:
    """Raise TypeError unless instances of `impl` would satisfy `contract`."""
    if not is_protocol(contract):
        if not issubclass(impl, contract):
            msg = f"Implementation {impl.__name__} must be a subclass of {contract.__name__}"
            raise TypeError(msg)
        return

    if contract in impl.__mro__:
        return

    declared = _declared_attribute_names(impl)
    _check_members(contract, impl.__name__, lambda name: hasattr(impl, name) or name in declared, impl, bound=False)


def check_instance(contract: type, instance: object) -> None:
    """Raise TypeError unless `instance` satisfies `contract`."""
    impl = type(instance)
    if not is_protocol(contract):
        if not isinstance(instance, contract):
            msg = f"Instance of {impl.__name__} is not an instance of {contract.__name__}"
            raise TypeError(msg)
        return

    if contract not in impl.__mro__:
        _check_members(contract, impl.__name__, lambda name: hasattr(instance, name), instance, bound=True)

    if is_runtime_checkable(contract) and not isinstance(instance, contract):
        msg = f"Instance of {impl.__name__} does not implement runtime protocol {contract.__name__}"
        raise TypeError(msg)


def _check_members(
    contract: type,
    impl_name: str,
    has_member: Callable[[str], bool],
    target: object,
    *,
    bound: bool,
) -> None:
    methods, attributes = _protocol_members(contract)
    problems = [f"missing member '{name}'" for name in sorted(attributes) if not has_member(name)]

    for name, proto_method in methods.items():
        if not has_member(name):
            problems.append(f"missing method '{name}'")
            continue

        impl_method = getattr(target, name, None)
        if not callable(impl_method):
            problems.append(f"'{name}' is not callable")
            continue

        # Unbound functions looked up on a class still carry `self`
        drop_self = not bound and inspect.isfunction(inspect.getattr_static(target, name, None))
        problem = _compare_methods(name, proto_method, impl_method, drop_impl_self=drop_self)
        if problem:
            problems.append(problem)

    if problems:
        msg = f"{impl_name} does not conform to protocol {contract.__name__}: {'; '.join(problems)}"
        raise TypeError(msg)


def _protocol_members(contract: type) -> tuple[dict[str, Any], set[str]]:
    methods: dict[str, Any] = {}
    attributes: set[str] = set()

    # Walk base protocols first so that overriding declarations win
    for base in reversed(contract.__mro__):
        if base in _IGNORED_BASES or not is_protocol(base):
            continue
        for name in _annotation_names(base):
            if not name.startswith("_"):
                attributes.add(name)
        for name, value in vars(base).items():
            if name.startswith("_"):
                continue
            if inspect.isfunction(value):
                methods[name] = value
                attributes.discard(name)
            elif isinstance(value, property):
                attributes.add(name)

    return methods, attributes


def _declared_attribute_names(impl: type) -> set[str]:
    names: set[str] = set()
    for klass in impl.__mro__:
        if klass is object:
            continue
        names.update(_annotation_names(klass))
        # attributes assigned in __init__ show up among the code object's names
        init = vars(klass).get("__init__")
        if inspect.isfunction(init):
            names.update(init.__code__.co_names)
    if dataclasses.is_dataclass(impl):
        names.update(f.name for f in dataclasses.fields(impl))
    return names


def _compare_methods(name: str, proto_method: Any, impl_method: Any, *, drop_impl_self: bool) -> str | None:
    try:
        proto_sig = _signature(proto_method)
        impl_sig = _signature(impl_method)
    except (TypeError, ValueError):
        # builtins and C callables without introspectable signatures
        return None

    proto_params = list(proto_sig.parameters.values())[1:]
    impl_params = list(impl_sig.parameters.values())
    if drop_impl_self and impl_params and impl_params[0].kind in _POSITIONAL:
        impl_params = impl_params[1:]

    required = _required_positional(proto_params)
    accepted = _accepted_positional(impl_params)
    if accepted < required:
        return f"'{name}' accepts {accepted} positional argument(s), protocol passes {required}"
    if _required_positional(impl_params) > required:
        return f"'{name}' requires more positional arguments than protocol passes ({required})"

    if not _returns_compatible(impl_sig.return_annotation, proto_sig.return_annotation):
        return f"'{name}' returns {impl_sig.return_annotation!r}, protocol expects {proto_sig.return_annotation!r}"
    return None


def _signature(func: Any) -> inspect.Signature:
    try:
        return inspect.signature(func, eval_str=True)
    except NameError:
        return inspect.signature(func)


_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def _required_positional(params: list[inspect.Parameter]) -> int:
    return sum(1 for p in params if p.kind in _POSITIONAL and p.default is inspect.Parameter.empty)


def _accepted_positional(params: list[inspect.Parameter]) -> int | float:
    if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params):
        return float("inf")
    return sum(1 for p in params if p.kind in _POSITIONAL)


def _returns_compatible(impl_ret: Any, proto_ret: Any) -> bool:
    empty = inspect.Signature.empty
    if empty in (impl_ret, proto_ret) or Any in (impl_ret, proto_ret):
        return True
    # unresolved forward references cannot be compared
    if isinstance(impl_ret, str) or isinstance(proto_ret, str):
        return True
    if impl_ret == proto_ret:
        return True
    if inspect.isclass(impl_ret) and inspect.isclass(proto_ret):
        return issubclass(impl_ret, proto_ret)
    return False


def _annotation_names(klass: type) -> set[str]:
    try:
        return set(inspect.get_annotations(klass))
    except NameError:
        return set()
