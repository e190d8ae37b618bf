from __future__ import annotations

from typing import Any


class InjectorError(RuntimeError):
    pass


class DestroyedInjectorError(InjectorError):
    pass


class DestroyedMappingError(InjectorError):
    pass


class SealedMappingError(InjectorError):
    pass


class SealedMappingOverrideError(SealedMappingError):
    pass


class SealedMappingRemovalError(SealedMappingError):
    pass


class AuthorizationError(InjectorError):
    pass


class ResolutionError(InjectorError):
    pass


class UnknownMappingError(ResolutionError):
    pass


class IncompleteMappingError(ResolutionError):
    pass


class UnknownMetadataError(ResolutionError, KeyError):
    def __str__(self) -> str:
        # KeyError would render the message quoted
        return RuntimeError.__str__(self)


class MissingDependencyError(ResolutionError):
    """A required constructor argument or injected property has no mapping."""

    def __init__(self, msg: str, *, dependency: Any, owner: Any) -> None:
        super().__init__(msg)
        self.dependency = dependency
        self.owner = owner


def token_name(token: Any) -> str:
    """Readable name of a type identifier for error and log messages."""
    return getattr(token, "__qualname__", None) or repr(token)
