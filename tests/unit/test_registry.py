"""Unit tests for MappingRegistry, column naming and values_of."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

import pytest
from pydantic import AliasChoices, AliasPath, BaseModel, Field, ValidationError

from row_tx.core.exceptions import (
    DuplicateColumnError,
    FieldAccessError,
    WrongTypeError,
)
from row_tx.mapping.naming import resolve_column
from row_tx.mapping.registry import (
    MappingConfig,
    MappingRegistry,
    build_mapping,
    default_registry,
    get_mapping,
    values_of,
)


@dataclass
class User:
    id: int = field(metadata={"dbfield": "user_id"})
    name: str = field(metadata={"json": "display_name,omitempty"})
    email: str = ""


@dataclass
class Tagged:
    a: int = field(metadata={"dbfield": "col_a", "dbMapName": "map_a", "json": "json_a"})
    b: int = field(metadata={"dbMapName": "map_b", "json": "json_b"})
    c: int = field(metadata={"json": "-"})


@dataclass
class Clash:
    first: int = field(metadata={"dbfield": "same"})
    second: int = field(metadata={"dbfield": "same"})


@dataclass
class WithDerived:
    id: int
    total: float = field(init=False, default=0.0)


class Account(BaseModel):
    id: int = Field(json_schema_extra={"dbfield": "account_id"})
    owner: str = Field(alias="owner_name")
    balance: float = 0.0


class Profile(BaseModel):
    id: int = Field(validation_alias=AliasChoices("profile_id", "pid"))
    city: str = Field(validation_alias=AliasPath("address", "city"))
    second_tag: str = Field(validation_alias=AliasPath("tags", 1))


class NotARecord:
    id: int = 1


class TestColumnResolution:
    def test_untagged_field_uses_its_name(self) -> None:
        assert resolve_column("email", {}) == "email"

    def test_first_source_wins(self) -> None:
        mapping = build_mapping(Tagged)
        assert mapping.column_names == ("col_a", "map_b", "c")

    def test_serialization_name_is_cut_at_comma(self) -> None:
        assert build_mapping(User).column_names == ("user_id", "display_name", "email")

    def test_dash_suppresses_serialization_name(self) -> None:
        assert resolve_column("c", {"json": "-"}) == "c"

    def test_custom_source_order(self) -> None:
        mapping = build_mapping(Tagged, ["json", "dbfield"])
        assert mapping.column_names == ("json_a", "json_b", "c")

    def test_pydantic_extras_and_alias(self) -> None:
        mapping = build_mapping(Account)
        assert mapping.column_names == ("account_id", "owner_name", "balance")
        assert mapping.is_pydantic

    def test_duplicate_columns_rejected(self) -> None:
        with pytest.raises(DuplicateColumnError) as exc_info:
            build_mapping(Clash)
        assert exc_info.value.column == "same"
        assert exc_info.value.fields == ["first", "second"]


class TestMappingRegistry:
    def test_same_mapping_for_class_and_instance(self, registry: MappingRegistry) -> None:
        by_class = registry.get_mapping(User)
        by_instance = registry.get_mapping(User(id=1, name="a"))
        assert by_class is by_instance
        assert len(registry) == 1
        assert User in registry

    def test_rejects_non_record(self, registry: MappingRegistry) -> None:
        with pytest.raises(WrongTypeError):
            registry.get_mapping(NotARecord)
        with pytest.raises(WrongTypeError):
            registry.get_mapping(42)

    def test_concurrent_first_use_builds_once(self, registry: MappingRegistry) -> None:
        barrier = threading.Barrier(8)
        seen = []

        def worker() -> None:
            barrier.wait()
            seen.append(registry.get_mapping(Tagged))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(seen) == 8
        assert all(m is seen[0] for m in seen)

    def test_reset_drops_cache(self, registry: MappingRegistry) -> None:
        before = registry.get_mapping(User)
        registry.reset()
        assert len(registry) == 0
        after = registry.get_mapping(User)
        assert after is not before
        assert after.column_names == before.column_names

    def test_set_naming_sources_rebuilds(self, registry: MappingRegistry) -> None:
        assert registry.get_mapping(Tagged).column_names[0] == "col_a"
        registry.set_naming_sources("json")
        assert registry.naming_sources == ("json",)
        assert registry.get_mapping(Tagged).column_names == ("json_a", "json_b", "c")

    def test_from_config(self) -> None:
        config = MappingConfig(naming_sources=("dbMapName",), scan_capacity=16)
        registry = MappingRegistry.from_config(config)
        assert registry.scan_capacity == 16
        assert registry.get_mapping(Tagged).column_names == ("map_a", "map_b", "c")

    def test_config_rejects_duplicate_sources(self) -> None:
        with pytest.raises(ValidationError):
            MappingConfig(naming_sources=("json", "json"))

    def test_config_rejects_zero_capacity(self) -> None:
        with pytest.raises(ValidationError):
            MappingConfig(scan_capacity=0)

    def test_scanner_uses_capacity(self) -> None:
        registry = MappingRegistry(scan_capacity=4)
        scanner = registry.scanner(User)
        assert scanner.mapping is registry.get_mapping(User)

    def test_module_functions_default_registry(self) -> None:
        assert get_mapping(User) is default_registry().get_mapping(User)

    def test_describe(self, registry: MappingRegistry) -> None:
        assert registry.get_mapping(User).describe() == {
            "user_id": {"field": "id", "type": "int"},
            "display_name": {"field": "name", "type": "str"},
            "email": {"field": "email", "type": "str"},
        }


class TestValuesOf:
    def test_values_in_field_order(self, registry: MappingRegistry) -> None:
        user = User(id=7, name="alice", email="a@example.com")
        assert values_of(user, registry) == [7, "alice", "a@example.com"]

    def test_pydantic_values(self, registry: MappingRegistry) -> None:
        account = Account(id=1, owner_name="bob", balance=2.5)
        assert values_of(account, registry) == [1, "bob", 2.5]

    def test_class_is_rejected(self, registry: MappingRegistry) -> None:
        with pytest.raises(WrongTypeError):
            values_of(User, registry)

    def test_unset_field(self, registry: MappingRegistry) -> None:
        user = User(id=1, name="a")
        del user.name
        with pytest.raises(FieldAccessError) as exc_info:
            values_of(user, registry)
        assert exc_info.value.field_name == "name"


class TestBuild:
    def test_dataclass_init_false_field(self, registry: MappingRegistry) -> None:
        record = registry.get_mapping(WithDerived).build([3, 9.5])
        assert record.id == 3
        assert record.total == 9.5

    def test_pydantic_build_uses_alias(self, registry: MappingRegistry) -> None:
        record = registry.get_mapping(Account).build([1, "carol", 0.0])
        assert record == Account(id=1, owner_name="carol", balance=0.0)

    def test_pydantic_build_uses_validation_alias_paths(self, registry: MappingRegistry) -> None:
        mapping = registry.get_mapping(Profile)
        assert mapping.column_names == ("id", "city", "second_tag")

        record = mapping.build([7, "Oslo", "blue"])
        assert (record.id, record.city, record.second_tag) == (7, "Oslo", "blue")
