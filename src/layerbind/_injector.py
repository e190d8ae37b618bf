from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, TypeVar, overload

from ._errors import (
    DestroyedInjectorError,
    MissingDependencyError,
    SealedMappingOverrideError,
    SealedMappingRemovalError,
    UnknownMappingError,
    token_name,
)
from ._events import EventDispatcher, MappingEvent
from ._mapping import InjectionMapping
from ._metadata import metadata as default_metadata


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ._metadata import MetadataRegistry, PropertyInjection, TypeMetadata

    T = TypeVar("T")


class Injector:
    """Hierarchical dependency injector.

    - map type identifiers to values, types, singletons or factories
    - seal mappings against override and removal
    - resolve through the parent chain, nearest mapping wins
    - instantiate and inject instances as described by their metadata.

    Every injector maps `Injector` to itself (sealed), so injected objects can
    ask for the injector that created them.
    """

    def __init__(self, parent: Injector | None = None, *, metadata: MetadataRegistry | None = None) -> None:
        self._parent = parent
        if metadata is None:
            metadata = parent.metadata if parent is not None else default_metadata
        self._metadata = metadata
        self._mappings: dict[Any, InjectionMapping] = {}
        self._seal_key = object()
        self._destroyed = False
        self._events = EventDispatcher()
        self._lock = threading.RLock()

        self.map(Injector).to_value(self).seal()

    @property
    def parent(self) -> Injector | None:
        return self._parent

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def metadata(self) -> MetadataRegistry:
        return self._metadata

    @property
    def events(self) -> EventDispatcher:
        """Channel announcing `MappingEvent`s of this injector."""
        return self._events

    def create_sub_injector(self) -> Injector:
        """Create an injector that resolves in itself first, then falls back to this one."""
        self._check_destroyed()
        return Injector(self)

    def map(self, token: Any) -> InjectionMapping:
        """Create a mapping for `token`, replacing an unsealed existing one.

        Example:
          injector.map(Logger).to_value(logger).seal()
          injector.map(Service).to_singleton(ServiceImpl)

        """
        self._check_destroyed()

        with self._lock:
            if token in self._mappings:
                existing = self._mappings[token]
                if existing.sealed:
                    msg = f"Sealed mapping of {token_name(token)} cannot be overridden"
                    raise SealedMappingOverrideError(msg)

                logger.warning("Overriding existing mapping of %s", token_name(token))
                if self._events.has_event_listener(MappingEvent.MAPPING_OVERRIDE):
                    self._events.dispatch_event(MappingEvent(MappingEvent.MAPPING_OVERRIDE, token, existing))

                self.un_map(token)

            mapping = InjectionMapping(token, self, self._seal_key)
            self._mappings[token] = mapping

        logger.debug("Mapped %s", token_name(token))
        self._events.dispatch_event(MappingEvent(MappingEvent.MAPPING_CREATED, token, mapping))
        return mapping

    def un_map(self, token: Any) -> None:
        self._check_destroyed()

        with self._lock:
            if token not in self._mappings:
                msg = f"No mapping of {token_name(token)} to unmap"
                raise UnknownMappingError(msg)

            mapping = self._mappings[token]
            if mapping.sealed:
                msg = f"Sealed mapping of {token_name(token)} cannot be unmapped"
                raise SealedMappingRemovalError(msg)

            mapping.destroy()
            del self._mappings[token]

        logger.debug("Unmapped %s", token_name(token))
        self._events.dispatch_event(MappingEvent(MappingEvent.MAPPING_DESTROYED, token, mapping))

    def has_direct_mapping(self, token: Any) -> bool:
        self._check_destroyed()
        with self._lock:
            return token in self._mappings

    def has_mapping(self, token: Any) -> bool:
        """Whether `token` is mapped in this injector or any of its ancestors."""
        return self._find_owner(token) is not None

    def get_mapping(self, token: Any) -> InjectionMapping:
        """Return the mapping of `token` in exactly this injector.

        Ancestor mappings are not returned, so that a child cannot accidentally
        reconfigure a mapping its parent owns. Query `parent` for those.
        """
        self._check_destroyed()
        with self._lock:
            try:
                return self._mappings[token]
            except KeyError:
                msg = f"No mapping of {token_name(token)} in this injector"
                raise UnknownMappingError(msg) from None

    @overload
    def get(self, token: type[T]) -> T: ...

    @overload
    def get(self, token: Any) -> Any: ...

    def get(self, token: Any) -> Any:
        """Resolve `token` through the nearest injector that maps it."""
        owner = self._find_owner(token)
        if owner is None:
            msg = f"No mapping of {token_name(token)} in this injector or its parents"
            raise UnknownMappingError(msg)
        return owner.get_mapping(token).get_injected_value()

    def instantiate_instance(self, cls: type[T]) -> T:
        """Create an instance of `cls` with its constructor arguments and properties injected.

        Post-construct methods run once properties are filled in.
        """
        self._check_destroyed()

        # A class without metadata of its own may still inherit injection points
        if not self._metadata.has_metadata(cls):
            return self.inject_into(cls())

        descriptor = self._metadata.get_type_descriptor(cls)

        args = []
        for arg in descriptor.constructor_arguments:
            present = self.has_mapping(arg.type)
            if not present and not arg.is_optional:
                msg = f"Constructor argument of type {token_name(arg.type)} for {token_name(cls)} is not mapped"
                raise MissingDependencyError(msg, dependency=arg.type, owner=cls)
            args.append(self.get(arg.type) if present else None)

        return self.inject_into(cls(*args))

    def inject_into(self, target: T) -> T:
        """Fill injected properties of `target` and invoke its post-construct methods."""
        self._check_destroyed()

        chain = self._metadata.get_inherited_metadata(target)
        if not chain:
            return target

        injections = _merge_property_injections(chain)
        post_construct_methods = _merge_method_names(meta.post_construct_methods for meta in chain)

        for injection in injections.values():
            present = self.has_mapping(injection.type)
            if not present and not injection.is_optional:
                msg = (
                    f"Injected property '{injection.name}' of type {token_name(injection.type)} "
                    f"for {token_name(type(target))} is not mapped"
                )
                raise MissingDependencyError(msg, dependency=injection.type, owner=type(target))
            if present:
                setattr(target, injection.name, self.get(injection.type))

        for name in post_construct_methods:
            getattr(target, name)()

        return target

    def destroy_instance(self, target: object) -> None:
        """Invoke the pre-destroy methods of `target`, if it has any."""
        self._check_destroyed()

        chain = self._metadata.get_inherited_metadata(target)
        if not chain:
            return

        for name in _merge_method_names(meta.pre_destroy_methods for meta in chain):
            getattr(target, name)()

    def destroy(self) -> None:
        """Unseal and remove every direct mapping; the injector is unusable afterwards."""
        self._check_destroyed()

        with self._lock:
            for token, mapping in list(self._mappings.items()):
                if mapping.sealed:
                    mapping.unseal(self._seal_key)
                self.un_map(token)

            self._destroyed = True

        logger.debug("Injector destroyed")

    def _find_owner(self, token: Any) -> Injector | None:
        injector: Injector | None = self
        while injector is not None:
            if injector.has_direct_mapping(token):
                return injector
            injector = injector.parent
        return None

    def _check_destroyed(self) -> None:
        if self._destroyed:
            msg = "Injector instance is already destroyed"
            raise DestroyedInjectorError(msg)


def _merge_property_injections(chain: list[TypeMetadata]) -> dict[str, PropertyInjection]:
    # First descriptor of a name wins, unless a later one makes it optional
    merged: dict[str, PropertyInjection] = {}
    for meta in chain:
        for injection in meta.property_injections:
            current = merged.get(injection.name)
            if current is None or (injection.is_optional and not current.is_optional):
                merged[injection.name] = injection
    return merged


def _merge_method_names(groups: Iterable[Iterable[str]]) -> list[str]:
    names: list[str] = []
    for group in groups:
        for name in group:
            if name not in names:
                names.append(name)
    return names
