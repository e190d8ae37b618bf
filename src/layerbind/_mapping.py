from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

from ._errors import (
    AuthorizationError,
    DestroyedMappingError,
    IncompleteMappingError,
    SealedMappingOverrideError,
    token_name,
)


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable

    from ._injector import Injector

# Marks an empty singleton cache; a singleton may legitimately be None
_UNSET: Any = object()


class Strategy(Enum):
    VALUE = "value"
    TYPE = "type"
    SINGLETON = "singleton"
    FACTORY = "factory"
    EXISTING = "existing"


class InjectionMapping:
    """Binding of one type identifier to the way its value is produced.

    Mappings are created by `Injector.map` and belong to that injector only:
    - `to_value` returns a fixed value
    - `to_type` instantiates a new instance per request
    - `to_singleton` instantiates once and caches
    - `to_factory` calls `factory(injector)` per request
    - `to_existing` forwards to the mapping of another type.
    """

    def __init__(self, mapped_type: Any, injector: Injector, seal_key: object) -> None:
        self._mapped_type = mapped_type
        self._injector = injector
        self._seal_key = seal_key
        self._sealed = False
        self._destroyed = False
        self._strategy: Strategy | None = None
        self._target: Any = None
        self._cached = _UNSET

    def __repr__(self) -> str:
        strategy = self._strategy.value if self._strategy else None
        return f"InjectionMapping({token_name(self._mapped_type)}, strategy={strategy}, sealed={self._sealed})"

    @property
    def mapped_type(self) -> Any:
        return self._mapped_type

    @property
    def injector(self) -> Injector:
        return self._injector

    @property
    def strategy(self) -> Strategy | None:
        return self._strategy

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def to_value(self, value: Any) -> InjectionMapping:
        return self._set_strategy(Strategy.VALUE, value)

    def to_type(self, cls: type) -> InjectionMapping:
        return self._set_strategy(Strategy.TYPE, cls)

    def to_singleton(self, cls: type | None = None) -> InjectionMapping:
        """Instantiate `cls` (default: the mapped type) on first request and cache it."""
        return self._set_strategy(Strategy.SINGLETON, self._mapped_type if cls is None else cls)

    def to_factory(self, factory: Callable[[Injector], Any]) -> InjectionMapping:
        return self._set_strategy(Strategy.FACTORY, factory)

    def to_existing(self, other_type: Any) -> InjectionMapping:
        return self._set_strategy(Strategy.EXISTING, other_type)

    def seal(self) -> InjectionMapping:
        """Prevent override, removal and reconfiguration of this mapping."""
        self._check_destroyed()
        self._sealed = True
        return self

    def unseal(self, key: object) -> InjectionMapping:
        self._check_destroyed()
        if key is not self._seal_key:
            msg = f"Unseal of {token_name(self._mapped_type)} mapping attempted with an invalid key"
            raise AuthorizationError(msg)
        self._sealed = False
        return self

    def get_injected_value(self) -> Any:
        self._check_destroyed()
        strategy = self._strategy

        if strategy is Strategy.VALUE:
            return self._target

        if strategy is Strategy.TYPE:
            return self._injector.instantiate_instance(self._target)

        if strategy is Strategy.FACTORY:
            return self._target(self._injector)

        if strategy is Strategy.EXISTING:
            return self._injector.get(self._target)

        if strategy is Strategy.SINGLETON:
            with self._injector._lock:  # noqa: SLF001
                if self._cached is _UNSET:
                    # Left unset if instantiation raises, so the next request retries
                    self._cached = self._injector.instantiate_instance(self._target)
                    logger.debug("Created singleton %s for %s", token_name(self._target), token_name(self._mapped_type))
                return self._cached

        msg = f"Mapping of {token_name(self._mapped_type)} has no value, type, singleton or factory configured"
        raise IncompleteMappingError(msg)

    def destroy(self) -> None:
        self._check_destroyed()
        self._strategy = None
        self._target = None
        self._cached = _UNSET
        self._destroyed = True

    def _set_strategy(self, strategy: Strategy, target: Any) -> InjectionMapping:
        self._check_destroyed()
        if self._sealed:
            msg = f"Sealed mapping of {token_name(self._mapped_type)} cannot be reconfigured"
            raise SealedMappingOverrideError(msg)
        self._strategy = strategy
        self._target = target
        self._cached = _UNSET
        return self

    def _check_destroyed(self) -> None:
        if self._destroyed:
            msg = f"Mapping of {token_name(self._mapped_type)} is already destroyed"
            raise DestroyedMappingError(msg)
