from __future__ import annotations

import inspect
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from ._errors import UnknownMetadataError


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    C = TypeVar("C", bound=type)
    F = TypeVar("F", bound=Callable[..., Any])

# Attribute set on methods marked by `post_construct` / `pre_destroy`
_HOOK_ATTR = "__layerbind_hook__"
_POST_CONSTRUCT = "post_construct"
_PRE_DESTROY = "pre_destroy"


@dataclass(frozen=True)
class ConstructorArg:
    type: Any
    is_optional: bool = False


@dataclass(frozen=True)
class PropertyInjection:
    name: str
    type: Any
    is_optional: bool = False


@dataclass(frozen=True)
class TypeMetadata:
    """Injection description of a single class (not including its bases)."""

    constructor_arguments: tuple[ConstructorArg, ...] = ()
    property_injections: tuple[PropertyInjection, ...] = ()
    post_construct_methods: tuple[str, ...] = ()
    pre_destroy_methods: tuple[str, ...] = ()


class MetadataRegistry:
    """Explicit registry of `TypeMetadata` keyed by class.

    Lookups by class only see classes registered directly. Lookups by instance
    walk the instance's MRO so that subclasses inherit injection points and
    lifecycle hooks of their bases.
    """

    def __init__(self) -> None:
        self._descriptors: dict[type, TypeMetadata] = {}
        self._lock = threading.RLock()

    def register(
        self,
        cls: type,
        constructor_arguments: Iterable[ConstructorArg | Any] = (),
        property_injections: Iterable[PropertyInjection] = (),
        post_construct_methods: Iterable[str] = (),
        pre_destroy_methods: Iterable[str] = (),
    ) -> TypeMetadata:
        """Register (or replace) the descriptor of `cls`.

        Example:
          registry.register(Service, [Logger, optional(Config)],
                            [PropertyInjection("db", Database)],
                            post_construct_methods=["start"])

        """
        if not inspect.isclass(cls):
            msg = f"Metadata can only be registered for classes, got {cls!r}"
            raise TypeError(msg)

        descriptor = TypeMetadata(
            constructor_arguments=tuple(_as_constructor_arg(arg) for arg in constructor_arguments),
            property_injections=tuple(property_injections),
            post_construct_methods=tuple(post_construct_methods),
            pre_destroy_methods=tuple(pre_destroy_methods),
        )
        with self._lock:
            if cls in self._descriptors:
                logger.debug("Replacing metadata of %s", cls.__qualname__)
            self._descriptors[cls] = descriptor
        return descriptor

    def unregister(self, cls: type) -> None:
        with self._lock:
            self._descriptors.pop(cls, None)

    def clear(self) -> None:
        with self._lock:
            self._descriptors.clear()

    def has_metadata(self, cls: type) -> bool:
        with self._lock:
            return cls in self._descriptors

    def get_type_descriptor(self, cls: type) -> TypeMetadata:
        with self._lock:
            try:
                return self._descriptors[cls]
            except KeyError:
                msg = f"No metadata registered for {getattr(cls, '__qualname__', cls)!r}"
                raise UnknownMetadataError(msg) from None

    def get_inherited_metadata(self, instance: object) -> list[TypeMetadata] | None:
        """Descriptors of the instance's class and its bases, most-derived first.

        Returns None when no class in the MRO has registered metadata.
        """
        with self._lock:
            chain = [self._descriptors[cls] for cls in type(instance).__mro__ if cls in self._descriptors]
        return chain or None


metadata = MetadataRegistry()


def optional(tp: Any) -> ConstructorArg:
    """Mark a dependency as optional; it resolves to None when unmapped."""
    return ConstructorArg(tp, is_optional=True)


def post_construct(method: F) -> F:
    """Mark a method to be called once all properties have been injected."""
    return _mark_hook(method, _POST_CONSTRUCT)


def pre_destroy(method: F) -> F:
    """Mark a method to be called by `Injector.destroy_instance`."""
    return _mark_hook(method, _PRE_DESTROY)


def injectable(
    *constructor_arguments: Any,
    registry: MetadataRegistry | None = None,
    **properties: Any,
) -> Callable[[C], C]:
    """Class decorator registering the class's injection metadata.

    Positional arguments describe constructor arguments in order, keyword
    arguments map property names to the type injected into them. Either may be
    wrapped with `optional()`. Methods decorated with `post_construct` /
    `pre_destroy` become lifecycle hooks, including those inherited from base
    classes that are not registered themselves.

    Example:
      @injectable(Logger, optional(Config), db=Database)
      class Service:
          def __init__(self, logger, config): ...

          @post_construct
          def start(self): ...

    """

    def decorate(cls: C) -> C:
        target = registry if registry is not None else metadata

        injections = []
        for name, dependency in properties.items():
            arg = _as_constructor_arg(dependency)
            injections.append(PropertyInjection(name, arg.type, arg.is_optional))

        post_construct_methods, pre_destroy_methods = _collect_hooks(cls, target)

        target.register(
            cls,
            constructor_arguments,
            injections,
            post_construct_methods,
            pre_destroy_methods,
        )
        return cls

    return decorate


def _mark_hook(method: F, kind: str) -> F:
    setattr(method, _HOOK_ATTR, getattr(method, _HOOK_ATTR, frozenset()) | {kind})
    return method


def _collect_hooks(cls: type, registry: MetadataRegistry) -> tuple[list[str], list[str]]:
    # Registered bases contribute their hooks through their own descriptor.
    # A name defined closer to `cls` shadows the same name further up the MRO.
    post_construct_methods: list[str] = []
    pre_destroy_methods: list[str] = []
    seen: set[str] = set()
    for klass in cls.__mro__:
        if klass is object:
            continue
        members = vars(klass)
        if klass is not cls and registry.has_metadata(klass):
            seen.update(members)
            continue
        for name, member in members.items():
            if name in seen:
                continue
            seen.add(name)
            if isinstance(member, (staticmethod, classmethod)):
                continue
            kinds = getattr(member, _HOOK_ATTR, frozenset())
            if _POST_CONSTRUCT in kinds:
                post_construct_methods.append(name)
            if _PRE_DESTROY in kinds:
                pre_destroy_methods.append(name)
    return post_construct_methods, pre_destroy_methods


def _as_constructor_arg(dependency: Any) -> ConstructorArg:
    if isinstance(dependency, ConstructorArg):
        return dependency
    return ConstructorArg(dependency)
