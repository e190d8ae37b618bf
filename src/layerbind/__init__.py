"""Hierarchical dependency injection library.

This package provides an injector that maps type identifiers to values, types,
singletons or factories, resolves them through a chain of parent injectors and
builds objects from explicitly registered injection metadata.

Exports:
- `Injector`: Maps types, resolves them through its parents, instantiates and
  injects instances, and runs their lifecycle hooks.
- `InjectionMapping` / `Strategy`: A single binding and how it produces values.
  Mappings can be sealed against override and removal.
- `MetadataRegistry`, `metadata`, `injectable`, `optional`, `post_construct`,
  `pre_destroy`: Declare constructor arguments, injected properties and
  lifecycle hooks of a class.
- `EventDispatcher`, `MappingEvent`: Notifications of mapping changes.
"""

from ._errors import (
    AuthorizationError,
    DestroyedInjectorError,
    DestroyedMappingError,
    IncompleteMappingError,
    InjectorError,
    MissingDependencyError,
    ResolutionError,
    SealedMappingError,
    SealedMappingOverrideError,
    SealedMappingRemovalError,
    UnknownMappingError,
    UnknownMetadataError,
)
from ._events import ContextModuleEvent, Event, EventDispatcher, EventListener, MappingEvent
from ._injector import Injector
from ._mapping import InjectionMapping, Strategy
from ._metadata import (
    ConstructorArg,
    MetadataRegistry,
    PropertyInjection,
    TypeMetadata,
    injectable,
    metadata,
    optional,
    post_construct,
    pre_destroy,
)


__all__ = [
    "AuthorizationError",
    "ConstructorArg",
    "ContextModuleEvent",
    "DestroyedInjectorError",
    "DestroyedMappingError",
    "Event",
    "EventDispatcher",
    "EventListener",
    "IncompleteMappingError",
    "InjectionMapping",
    "Injector",
    "InjectorError",
    "MappingEvent",
    "MetadataRegistry",
    "MissingDependencyError",
    "PropertyInjection",
    "ResolutionError",
    "SealedMappingError",
    "SealedMappingOverrideError",
    "SealedMappingRemovalError",
    "Strategy",
    "TypeMetadata",
    "UnknownMappingError",
    "UnknownMetadataError",
    "injectable",
    "metadata",
    "optional",
    "post_construct",
    "pre_destroy",
]
