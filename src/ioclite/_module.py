from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ._container import Lifetime


if TYPE_CHECKING:
    from ._container import Container


logger = logging.getLogger(__name__)


@runtime_checkable
class Module(Protocol):
    """A group of registrations installed together with `Container.install`.

    Example:
      class PersistenceModule:
          def register_components(self, container: Container) -> None:
              container.register(IRepo, SqlRepo, lifetime=Lifetime.SINGLETON)
              container.register(IUnitOfWork, SqlUnitOfWork)

      container.install(PersistenceModule())

    """

    def register_components(self, container: Container) -> None: ...


def register_subclasses(
    container: Container,
    *bases: type,
    lifetime: Lifetime = Lifetime.SINGLETON,
) -> list[type]:
    """Register every loaded concrete subclass of `bases` against itself.

    Subclasses are discovered transitively through `__subclasses__()`, so only
    classes whose defining module has been imported are found. Abstract classes
    and the bases themselves are skipped. Returns the registered classes in
    discovery order.
    """
    registered: list[type] = []
    seen: set[type] = set(bases)
    pending = [sub for base in bases for sub in base.__subclasses__()]

    while pending:
        cls = pending.pop(0)
        if cls in seen:
            continue
        seen.add(cls)
        pending.extend(cls.__subclasses__())

        if inspect.isabstract(cls):
            continue

        container.register(cls, cls, lifetime=lifetime)
        registered.append(cls)

    logger.debug("auto-registered %d subclass(es) of %s", len(registered), ", ".join(b.__name__ for b in bases))
    return registered
