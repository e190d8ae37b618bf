import unittest
from unittest.mock import MagicMock

import pytest

from layerbind import (
    DestroyedInjectorError,
    DestroyedMappingError,
    Injector,
    MappingEvent,
    MetadataRegistry,
    injectable,
    post_construct,
    pre_destroy,
)


class TestLifecycleHooks(unittest.TestCase):
    injector: Injector

    def setUp(self):
        self.registry = MetadataRegistry()
        self.injector = Injector(metadata=self.registry)

    def test_post_construct_runs_once_per_inject_into(self):
        calls = []

        @injectable(registry=self.registry)
        class Service:
            @post_construct
            def start(self):
                calls.append("start")

        target = Service()
        self.injector.inject_into(target)
        assert calls == ["start"]

        self.injector.inject_into(target)
        assert calls == ["start", "start"]

    def test_post_construct_duplicated_across_chain_runs_once(self):
        calls = []

        @injectable(registry=self.registry)
        class Base:
            @post_construct
            def start(self):
                calls.append("base")

        @injectable(registry=self.registry)
        class Derived(Base):
            @post_construct
            def start(self):
                calls.append("derived")

        self.injector.instantiate_instance(Derived)
        assert calls == ["derived"]

    def test_post_construct_methods_run_in_first_seen_order(self):
        calls = []

        class Base:
            def setup_base(self):
                calls.append("setup_base")

            def shared(self):
                calls.append("shared")

        class Derived(Base):
            def setup_derived(self):
                calls.append("setup_derived")

        self.registry.register(Base, post_construct_methods=["setup_base", "shared"])
        self.registry.register(Derived, post_construct_methods=["shared", "setup_derived"])

        self.injector.instantiate_instance(Derived)
        assert calls == ["shared", "setup_derived", "setup_base"]

    def test_destroy_instance_runs_pre_destroy_methods(self):
        calls = []

        @injectable(registry=self.registry)
        class Base:
            @pre_destroy
            def close(self):
                calls.append("close")

        @injectable(registry=self.registry)
        class Derived(Base):
            @pre_destroy
            def close(self):
                calls.append("derived close")

            @pre_destroy
            def flush(self):
                calls.append("flush")

        self.injector.destroy_instance(Derived())
        assert calls == ["derived close", "flush"]

    def test_hooks_marked_on_unregistered_base_class_run(self):
        calls = []

        class Base:
            @post_construct
            def start(self):
                calls.append("start")

            @pre_destroy
            def close(self):
                calls.append("close")

        @injectable(registry=self.registry)
        class Service(Base): ...

        service = self.injector.instantiate_instance(Service)
        self.injector.destroy_instance(service)

        assert calls == ["start", "close"]

    def test_unmarked_override_shadows_base_hook(self):
        calls = []

        class Base:
            @post_construct
            def start(self):
                calls.append("base")

        @injectable(registry=self.registry)
        class Service(Base):
            def start(self):
                calls.append("service")

        self.injector.instantiate_instance(Service)

        assert calls == []
        assert self.registry.get_type_descriptor(Service).post_construct_methods == ()

    def test_hooks_of_registered_base_are_not_duplicated(self):
        calls = []

        @injectable(registry=self.registry)
        class Base:
            @post_construct
            def start(self):
                calls.append("start")

        @injectable(registry=self.registry)
        class Service(Base): ...

        self.injector.instantiate_instance(Service)

        assert self.registry.get_type_descriptor(Service).post_construct_methods == ()
        assert calls == ["start"]

    def test_method_marked_as_both_hooks_runs_for_each(self):
        calls = []

        @injectable(registry=self.registry)
        class Service:
            @post_construct
            @pre_destroy
            def reset(self):
                calls.append("reset")

        descriptor = self.registry.get_type_descriptor(Service)
        assert descriptor.post_construct_methods == ("reset",)
        assert descriptor.pre_destroy_methods == ("reset",)

        service = self.injector.instantiate_instance(Service)
        self.injector.destroy_instance(service)
        assert calls == ["reset", "reset"]

    def test_destroy_instance_without_metadata_is_noop(self):
        class A: ...

        self.injector.destroy_instance(A())

    def test_destroy_instance_does_not_touch_mappings(self):
        @injectable(registry=self.registry)
        class Service:
            @pre_destroy
            def close(self): ...

        service = Service()
        self.injector.map(Service).to_value(service)

        self.injector.destroy_instance(service)

        assert self.injector.get(Service) is service


class TestInjectorDestroy(unittest.TestCase):
    injector: Injector

    def setUp(self):
        self.injector = Injector(metadata=MetadataRegistry())

    def test_destroy_removes_all_mappings_including_sealed(self):
        class A: ...

        class B: ...

        a_mapping = self.injector.map(A).to_value(A()).seal()
        b_mapping = self.injector.map(B).to_value(B())

        self.injector.destroy()

        assert self.injector.destroyed
        assert a_mapping.destroyed
        assert b_mapping.destroyed
        with pytest.raises(DestroyedMappingError):
            a_mapping.get_injected_value()

    def test_destroy_dispatches_mapping_destroyed_for_each_mapping(self):
        class A: ...

        self.injector.map(A).to_value(A()).seal()
        listener = MagicMock()
        self.injector.events.add_event_listener(MappingEvent.MAPPING_DESTROYED, listener)

        self.injector.destroy()

        destroyed = [call[0][0].mapped_type for call in listener.call_args_list]
        assert destroyed == [Injector, A]

    def test_second_destroy_raises(self):
        self.injector.destroy()

        with pytest.raises(DestroyedInjectorError):
            self.injector.destroy()

    def test_operations_after_destroy_raise(self):
        class A: ...

        self.injector.map(A).to_value(A())
        self.injector.destroy()

        operations = [
            lambda: self.injector.map(A),
            lambda: self.injector.un_map(A),
            lambda: self.injector.has_direct_mapping(A),
            lambda: self.injector.has_mapping(A),
            lambda: self.injector.get_mapping(A),
            lambda: self.injector.get(A),
            lambda: self.injector.instantiate_instance(A),
            lambda: self.injector.inject_into(A()),
            lambda: self.injector.destroy_instance(A()),
            lambda: self.injector.create_sub_injector(),
        ]
        for operation in operations:
            with pytest.raises(DestroyedInjectorError):
                operation()

    def test_destroyed_injector_has_no_direct_mappings_left(self):
        class A: ...

        self.injector.map(A).to_value(A())
        self.injector.destroy()

        assert self.injector._mappings == {}  # noqa: SLF001
