"""Unit tests for the row scanner, run against in-memory cursors."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import pytest
from pydantic import BaseModel, Field

from row_bind.core.enums import Capability
from row_bind.core.exceptions import (
    ColumnCountMismatchError,
    MarshalError,
    NoRowsError,
    ScanError,
    ShapeMismatchError,
    UnmappedColumnError,
)
from row_bind.core.protocol import Cursor
from row_bind.mapping.descriptor import FieldSpec, TypeDescriptorCache, column, register
from row_bind.mapping.protocol import Scanner
from row_bind.mapping.scanner import (
    convert_value,
    is_scannable,
    map_scan,
    scan_all,
    scan_one,
    slice_scan,
)


@dataclass
class User:
    id: int = column("id")
    name: str = column("name")


@dataclass
class Audit:
    created_by: str = ""
    updated_by: str = ""


@dataclass
class Address:
    city: str = ""
    zip_code: str = column("zip", default="")


@dataclass
class Document:
    id: int = 0
    audit: Audit = column(inline=True, default_factory=Audit)
    address: Address = field(default_factory=Address)


class Money:
    def __init__(self, cents: int = 0) -> None:
        self.cents = cents

    @classmethod
    def from_db(cls, value: Any) -> Money:
        return cls(int(value))


@dataclass
class Order:
    id: int = 0
    total: Money = field(default_factory=Money)
    note: str | None = None


@dataclass
class Empty:
    pass


@dataclass
class Legacy:
    id: int = 0
    meta: str = field(default="", metadata={"db": "meta,jsonb"})


class Customer(BaseModel):
    id: int = Field(json_schema_extra={"db": "customer_id"})
    full_name: str
    vip: bool = False


class Aliased(BaseModel):
    user_id: int = Field(0, alias="userId")
    nick_name: str = Field("", alias="nickName", json_schema_extra={"db": "nick"})


class AliasedRequired(BaseModel):
    user_id: int = Field(alias="userId")


@dataclass
class Item:
    qty: int = 0


class TestScenarios:
    def test_struct_scan(self, fake_rows) -> None:
        rows = fake_rows(["id", "name"], [(7, "ann")])
        assert scan_all(rows, User) == [User(id=7, name="ann")]

    def test_unmapped_column_strict(self, fake_rows) -> None:
        rows = fake_rows(["id", "name", "extra"], [(7, "ann", "x")])
        with pytest.raises(UnmappedColumnError) as exc_info:
            scan_all(rows, User)
        assert exc_info.value.column == "extra"
        assert exc_info.value.target_class == "User"
        # Shape is checked before the cursor moves.
        assert rows.next()

    def test_unmapped_column_relaxed(self, fake_rows) -> None:
        rows = fake_rows(["id", "name", "extra"], [(7, "ann", "x")])
        assert scan_all(rows, User, relaxed=True) == [User(id=7, name="ann")]

    def test_scalar_target_with_two_columns(self, fake_rows) -> None:
        rows = fake_rows(["id", "name"], [(7, "ann")])
        with pytest.raises(ColumnCountMismatchError) as exc_info:
            scan_all(rows, int)
        assert exc_info.value.column_count == 2


class TestScanAll:
    def test_scalar_values(self, fake_rows) -> None:
        rows = fake_rows(["n"], [(1,), (2,), (3,)])
        assert scan_all(rows, int) == [1, 2, 3]

    def test_empty_result(self, fake_rows) -> None:
        assert scan_all(fake_rows(["id", "name"]), User) == []

    def test_fresh_value_per_row(self, fake_rows) -> None:
        rows = fake_rows(["id", "name"], [(1, "a"), (2, "b")])
        first, second = scan_all(rows, User)
        assert first is not second
        assert (first.id, second.id) == (1, 2)

    def test_terminal_error_raised_after_loop(self, fake_rows) -> None:
        rows = fake_rows(["n"], [(1,)], error=RuntimeError("connection reset"))
        with pytest.raises(RuntimeError, match="connection reset"):
            scan_all(rows, int)

    def test_dict_and_tuple_targets(self, fake_rows) -> None:
        data = [(1, "a"), (2, "b")]
        assert scan_all(fake_rows(["id", "name"], data), dict) == [
            {"id": 1, "name": "a"},
            {"id": 2, "name": "b"},
        ]
        assert scan_all(fake_rows(["id", "name"], data), tuple) == [(1, "a"), (2, "b")]


class TestScanOne:
    def test_first_row(self, fake_rows) -> None:
        rows = fake_rows(["id", "name"], [(1, "a"), (2, "b")])
        assert scan_one(rows, User) == User(id=1, name="a")

    def test_no_rows(self, fake_rows) -> None:
        with pytest.raises(NoRowsError, match="no rows in result set"):
            scan_one(fake_rows(["id"]), int)

    def test_cursor_error_preferred_over_no_rows(self, fake_rows) -> None:
        rows = fake_rows(["id"], error=RuntimeError("broken"))
        with pytest.raises(RuntimeError, match="broken"):
            scan_one(rows, int)

    def test_shape_checked_before_no_rows(self, fake_rows) -> None:
        with pytest.raises(ColumnCountMismatchError):
            scan_one(fake_rows(["a", "b"]), int)

    def test_struct_only_rejects_scalar(self, fake_rows) -> None:
        with pytest.raises(ShapeMismatchError, match="expected a structured type"):
            scan_one(fake_rows(["n"], [(1,)]), int, struct_only=True)

    def test_struct_only_rejects_scanner(self, fake_rows) -> None:
        with pytest.raises(ShapeMismatchError):
            scan_one(fake_rows(["total"], [(1,)]), Money, struct_only=True)

    def test_none_target(self, fake_rows) -> None:
        with pytest.raises(ShapeMismatchError, match="nil destination"):
            scan_one(fake_rows(["id"], [(1,)]), None)

    def test_value_instead_of_type(self, fake_rows) -> None:
        with pytest.raises(ShapeMismatchError, match="must pass a type"):
            scan_one(fake_rows(["id", "name"], [(1, "a")]), User(id=1, name="a"))


class TestNesting:
    def test_inline_and_dotted_columns(self, fake_rows) -> None:
        rows = fake_rows(
            ["id", "created_by", "address.city", "address.zip"],
            [(1, "root", "Oslo", "0150")],
        )
        doc = scan_one(rows, Document)
        assert doc == Document(
            id=1,
            audit=Audit(created_by="root", updated_by=""),
            address=Address(city="Oslo", zip_code="0150"),
        )

    def test_unbound_fields_keep_defaults(self, fake_rows) -> None:
        doc = scan_one(fake_rows(["id"], [(5,)]), Document)
        assert doc == Document(id=5)

    def test_pydantic_model(self, fake_rows) -> None:
        rows = fake_rows(["customer_id", "full_name"], [(3, "Bo")])
        assert scan_one(rows, Customer) == Customer(id=3, full_name="Bo", vip=False)

    def test_pydantic_alias_with_default(self, fake_rows) -> None:
        rows = fake_rows(["user_id", "nick"], [(7, "q")])
        assert scan_one(rows, Aliased) == Aliased(userId=7, nickName="q")

    def test_pydantic_required_alias(self, fake_rows) -> None:
        (member,) = scan_all(fake_rows(["user_id"], [(9,)]), AliasedRequired)
        assert member.user_id == 9

    def test_custom_cache_is_filled(self, fake_rows) -> None:
        cache = TypeDescriptorCache()
        assert scan_all(fake_rows(["id", "name"], [(1, "a")]), User, cache=cache) == [
            User(id=1, name="a")
        ]
        assert User in cache

    def test_custom_name_mapper_cache(self, fake_rows) -> None:
        cache = TypeDescriptorCache(str.upper)
        doc = scan_one(fake_rows(["ID", "CREATED_BY"], [(2, "me")]), Document, cache=cache)
        assert doc.id == 2
        assert doc.audit.created_by == "me"

    def test_deprecated_jsonb_option(self, fake_rows) -> None:
        rows = fake_rows(["id", "meta"], [(1, "{}")])
        with pytest.raises(MarshalError, match="jsonb"):
            scan_all(rows, Legacy)

    def test_jsonb_field_not_in_result_is_allowed(self, fake_rows) -> None:
        assert scan_all(fake_rows(["id"], [(1,)]), Legacy) == [Legacy(id=1)]


class TestConversion:
    def test_null_into_required_field(self, fake_rows) -> None:
        rows = fake_rows(["n"], [(None,)])
        with pytest.raises(ScanError, match="converting NULL to int is unsupported"):
            scan_all(rows, int)

    def test_null_into_optional(self, fake_rows) -> None:
        assert scan_all(fake_rows(["n"], [(None,), (4,)]), int | None) == [None, 4]

    def test_null_into_optional_field(self, fake_rows) -> None:
        order = scan_one(fake_rows(["id", "note"], [(1, None)]), Order)
        assert order.note is None

    def test_from_db_field(self, fake_rows) -> None:
        order = scan_one(fake_rows(["id", "total"], [(1, "250")]), Order)
        assert isinstance(order.total, Money)
        assert order.total.cents == 250

    def test_from_db_target(self, fake_rows) -> None:
        (money,) = scan_all(fake_rows(["total"], [(99,)]), Money)
        assert money.cents == 99

    def test_any_target_passes_through(self, fake_rows) -> None:
        assert scan_all(fake_rows(["v"], [(None,), ("x",)]), Any) == [None, "x"]

    def test_coercions(self) -> None:
        plain = Capability.PLAIN
        assert convert_value("42", int, False, plain) == 42
        assert convert_value(b"hi", str, False, plain) == "hi"
        assert convert_value("t", bool, False, plain) is True
        assert convert_value(0, bool, False, plain) is False
        assert convert_value("1.50", Decimal, False, plain) == Decimal("1.50")
        assert convert_value(3, float, False, plain) == 3.0

    def test_unconvertible_value(self, fake_rows) -> None:
        with pytest.raises(ScanError, match="to int"):
            scan_all(fake_rows(["n"], [("abc",)]), int)

    def test_lossy_float_rejected(self) -> None:
        with pytest.raises(ScanError):
            convert_value(1.5, int, False, Capability.PLAIN)

    def test_lossy_decimal_rejected(self, fake_rows) -> None:
        with pytest.raises(ScanError, match="loses precision"):
            scan_one(fake_rows(["qty"], [(Decimal("1.5"),)]), Item)

    def test_integral_decimal_and_float_accepted(self) -> None:
        assert convert_value(Decimal("2.00"), int, False, Capability.PLAIN) == 2
        assert convert_value(3.0, int, False, Capability.PLAIN) == 3

    def test_infinite_float_rejected(self) -> None:
        with pytest.raises(ScanError):
            convert_value(float("inf"), int, False, Capability.PLAIN)

    @pytest.mark.parametrize("value", [2, -1, 0.5, Decimal("3")])
    def test_bool_accepts_only_zero_and_one(self, value: Any) -> None:
        with pytest.raises(ScanError, match="as bool"):
            convert_value(value, bool, False, Capability.PLAIN)

    def test_bool_from_integers(self) -> None:
        assert convert_value(1, bool, False, Capability.PLAIN) is True
        assert convert_value(Decimal("0"), bool, False, Capability.PLAIN) is False


class TestIsScannable:
    def test_plain_types(self) -> None:
        assert is_scannable(int)
        assert is_scannable(str)

    def test_structured_types(self) -> None:
        assert not is_scannable(User)
        assert not is_scannable(Customer)

    def test_scanner_type(self) -> None:
        assert is_scannable(Money)

    def test_struct_without_fields(self) -> None:
        assert is_scannable(Empty)

    def test_registration_after_lookup_takes_effect(self) -> None:
        class Late:
            def __init__(self, code: str = "") -> None:
                self.code = code

        cache = TypeDescriptorCache()
        assert is_scannable(Late, cache)
        register(Late, [FieldSpec("code", str, default="")])
        assert not is_scannable(Late, cache)


class TestRowHelpers:
    def test_slice_scan(self, fake_rows) -> None:
        rows = fake_rows(["id", "name"], [(1, "a")])
        assert rows.next()
        assert slice_scan(rows) == [1, "a"]

    def test_map_scan(self, fake_rows) -> None:
        rows = fake_rows(["id", "name"], [(1, "a")])
        assert rows.next()
        assert map_scan(rows) == {"id": 1, "name": "a"}

    def test_map_scan_into_existing_dict(self, fake_rows) -> None:
        rows = fake_rows(["id"], [(1,)])
        dest = {"keep": True}
        assert rows.next()
        assert map_scan(rows, dest) is dest
        assert dest == {"keep": True, "id": 1}

    def test_map_scan_duplicate_columns_overwrite(self, fake_rows) -> None:
        rows = fake_rows(["id", "id"], [(1, 2)])
        assert rows.next()
        assert map_scan(rows) == {"id": 2}


class TestCursorContract:
    def test_fake_rows_is_a_cursor(self, fake_rows) -> None:
        assert isinstance(fake_rows(["id"]), Cursor)

    def test_db_rows_is_a_cursor(self, db) -> None:
        with db.query("SELECT 1 AS id") as rows:
            assert isinstance(rows, Cursor)

    def test_scanner_protocol(self) -> None:
        assert isinstance(Money(), Scanner)
        assert not isinstance(User(id=1, name="a"), Scanner)
