"""Type descriptor cache.

A descriptor is the flattened, column-keyed field table of one structured
type. Supported structured types:

* dataclasses -- column tag in ``field(metadata={"db": "name,omitempty"})``
* Pydantic models -- column tag in ``Field(json_schema_extra={"db": "name"})``
* plain classes registered with :func:`register`

Tag grammar: ``"<column>[,<option>...]"``. An empty column name falls back
to the cache's name mapper; ``"-"`` ignores the field. Options:

* ``omitempty`` -- skip empty values when marshaling
* ``inline`` -- flatten a nested structure without a column prefix
* ``jsonb`` -- deprecated; rejected at scan time

Nested structures that are not ``inline`` contribute dotted column names
(``address.city``).
"""

from __future__ import annotations

import dataclasses
import threading
import types
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel

from row_bind.core.enums import Capability
from row_bind.core.exceptions import DuplicateColumnError, ShapeMismatchError

NameMapper = Callable[[str], str]

DEFAULT_TAG = "db"

MISSING: Any = dataclasses.MISSING

# Marks a registered field without a default.
NO_DEFAULT: Any = object()


def snake_case(name: str) -> str:
    """Fold an identifier to snake_case: ``UserId`` -> ``user_id``."""
    chars: list[str] = []
    for idx, char in enumerate(name):
        if "A" <= char <= "Z":
            if idx > 0:
                chars.append("_")
            char = char.lower()
        chars.append(char)
    return "".join(chars)


def column(
    name: str | None = None,
    *,
    omitempty: bool = False,
    inline: bool = False,
    ignore: bool = False,
    **kwargs: Any,
) -> Any:
    """Declare a dataclass field with a column tag.

    Extra keyword arguments are passed through to ``dataclasses.field``.
    """
    if ignore:
        tag = "-"
    else:
        parts = [name or ""]
        if omitempty:
            parts.append("omitempty")
        if inline:
            parts.append("inline")
        tag = ",".join(parts)
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[DEFAULT_TAG] = tag
    return field(metadata=metadata, **kwargs)


# --- Explicit registration ---


@dataclass(frozen=True)
class FieldSpec:
    """One entry of an explicitly registered field table."""

    attr: str
    annotation: Any = Any
    db: str | None = None
    default: Any = NO_DEFAULT


_registry: dict[type, tuple[FieldSpec, ...]] = {}
_registry_lock = threading.Lock()
_registry_version = 0


def register(cls: type, fields: Iterable[FieldSpec]) -> None:
    """Register a field table for a plain class.

    The class is constructed with keyword arguments named after each
    ``FieldSpec.attr``. Register before the class is first described.
    """
    if not isinstance(cls, type):
        raise ShapeMismatchError(f"register expects a class, got {cls!r}")
    global _registry_version
    with _registry_lock:
        _registry[cls] = tuple(fields)
        _registry_version += 1


def registry_version() -> int:
    """Counter bumped by every :func:`register` call."""
    return _registry_version


def is_structured(tp: Any) -> bool:
    """Return True if ``tp`` is a type the descriptor cache can describe."""
    if not isinstance(tp, type) or get_origin(tp) is not None:
        return False
    return tp in _registry or dataclasses.is_dataclass(tp) or issubclass(tp, BaseModel)


# --- Descriptor types ---


def _none() -> None:
    return None


@dataclass(frozen=True)
class FieldInfo:
    """A mapped leaf field."""

    name: str
    path: tuple[str, ...]
    index: tuple[int, ...]
    options: frozenset[str]
    annotation: Any
    nullable: bool
    capabilities: Capability
    zero: Callable[[], Any] = field(default=_none, repr=False, compare=False)

    @property
    def omitempty(self) -> bool:
        return "omitempty" in self.options


@dataclass(frozen=True)
class _Member:
    """Construction entry for one declared attribute."""

    attr: str
    default: Callable[[], Any] | None
    zero: Callable[[], Any]
    nullable: bool = False
    child: StructPlan | None = None
    key: str | None = None

    def initial(self) -> Any:
        if self.default is not None:
            return self.default()
        if self.child is not None and not self.nullable:
            return self.child.build({})
        return self.zero()


@dataclass(frozen=True)
class StructPlan:
    """How to construct an instance of a structured type from a value tree."""

    type: type
    members: tuple[_Member, ...]

    def build(self, values: Mapping[str, Any]) -> Any:
        """Construct an instance; unbound attributes get their default or zero."""
        kwargs: dict[str, Any] = {}
        for member in self.members:
            if member.attr in values:
                value = values[member.attr]
                if member.child is not None:
                    value = member.child.build(value)
                kwargs[member.key or member.attr] = value
            else:
                kwargs[member.key or member.attr] = member.initial()
        if issubclass(self.type, BaseModel):
            return self.type.model_validate(kwargs)
        return self.type(**kwargs)


@dataclass(frozen=True, eq=False)
class TypeDescriptor:
    """Immutable column mapping for one structured type.

    Compared and hashed by identity, so a rebuilt descriptor never
    collides with a stale one in downstream caches.
    """

    type: type
    fields: tuple[FieldInfo, ...]
    by_name: Mapping[str, FieldInfo]
    plan: StructPlan

    def __len__(self) -> int:
        return len(self.fields)

    def field(self, name: str) -> FieldInfo | None:
        return self.by_name.get(name)

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]


# --- Introspection helpers ---


@dataclass(frozen=True)
class _Declared:
    attr: str
    annotation: Any
    tag: str | None
    default: Callable[[], Any] | None
    key: str | None = None


def _type_hints(tp: type) -> dict[str, Any]:
    try:
        return get_type_hints(tp)
    except (NameError, TypeError):
        return {}


def _validation_key(name: str, info: Any) -> str:
    """Keyword a Pydantic field is validated under: its alias when it has one."""
    if isinstance(info.validation_alias, str):
        return info.validation_alias
    return info.alias or name


def _declared_fields(tp: type, tag: str) -> list[_Declared]:
    """List the externally visible fields of ``tp`` in declaration order."""
    if tp in _registry:
        return [
            _Declared(
                attr=spec.attr,
                annotation=spec.annotation,
                tag=spec.db,
                default=None if spec.default is NO_DEFAULT else (lambda v=spec.default: v),
            )
            for spec in _registry[tp]
        ]

    if dataclasses.is_dataclass(tp):
        hints = _type_hints(tp)
        declared = []
        for f in dataclasses.fields(tp):
            if not f.init or f.name.startswith("_"):
                continue
            if f.default is not MISSING:
                default: Callable[[], Any] | None = lambda v=f.default: v  # noqa: E731
            elif f.default_factory is not MISSING:
                default = f.default_factory
            else:
                default = None
            declared.append(
                _Declared(
                    attr=f.name,
                    annotation=hints.get(f.name, Any),
                    tag=f.metadata.get(tag),
                    default=default,
                )
            )
        return declared

    if issubclass(tp, BaseModel):
        declared = []
        for name, info in tp.model_fields.items():
            extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
            declared.append(
                _Declared(
                    attr=name,
                    annotation=info.annotation,
                    tag=extra.get(tag),  # type: ignore[arg-type]
                    default=None
                    if info.is_required()
                    else (lambda i=info: i.get_default(call_default_factory=True)),
                    key=_validation_key(name, info),
                )
            )
        return declared

    raise ShapeMismatchError(f"expected a structured type but got {tp!r}")


def _parse_tag(tag: str | None) -> tuple[str | None, frozenset[str]]:
    if not tag:
        return None, frozenset()
    name, *options = [part.strip() for part in tag.split(",")]
    return name or None, frozenset(o for o in options if o)


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Split ``X | None`` into ``(X, True)``. Other unions become ``Any``."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = get_args(annotation)
        rest = [a for a in args if a is not type(None)]
        nullable = len(rest) != len(args)
        if len(rest) == 1:
            return rest[0], nullable
        return Any, nullable
    return annotation, annotation is Any


def _capabilities(annotation: Any) -> Capability:
    cls = get_origin(annotation) or annotation
    if cls is Any or not isinstance(cls, type) or cls is object:
        return Capability.DYNAMIC
    caps = Capability.PLAIN
    if callable(getattr(cls, "from_db", None)):
        caps |= Capability.SCANNER
    if callable(getattr(cls, "to_db", None)):
        caps |= Capability.VALUER
    if callable(getattr(cls, "is_zero", None)):
        caps |= Capability.ZERO_CHECKER
    return caps


def _zero_factory(annotation: Any, nullable: bool) -> Callable[[], Any]:
    if nullable:
        return _none
    cls = get_origin(annotation) or annotation
    if cls is Any or not isinstance(cls, type) or cls is object:
        return _none
    try:
        cls()
    except (TypeError, ValueError):
        return _none
    return cls


# --- Cache ---


class TypeDescriptorCache:
    """Memoizes descriptors by type identity.

    Lookups are lock-free once a descriptor is published; construction is
    serialized by a single lock with a second check under it. Descriptors
    built under one name mapper are never served after :meth:`rebuild`
    installs another.

    Args:
        name_mapper: Folds an attribute name into a column name when a field
            carries no explicit column tag.
        tag: Metadata key holding the column tag.
    """

    def __init__(self, name_mapper: NameMapper = snake_case, tag: str = DEFAULT_TAG) -> None:
        self._name_mapper = name_mapper
        self._tag = tag
        self._lock = threading.Lock()
        self._descriptors: dict[type, TypeDescriptor] = {}

    @property
    def name_mapper(self) -> NameMapper:
        return self._name_mapper

    @property
    def tag(self) -> str:
        return self._tag

    def describe(self, tp: type) -> TypeDescriptor:
        """Return the descriptor for ``tp``, building it on first use.

        Raises:
            ShapeMismatchError: If ``tp`` is not a structured type.
            DuplicateColumnError: If two fields share a column name.
        """
        descriptor = self._descriptors.get(tp)
        if descriptor is not None:
            return descriptor
        if not is_structured(tp):
            raise ShapeMismatchError(f"expected a structured type but got {tp!r}")
        with self._lock:
            descriptor = self._descriptors.get(tp)
            if descriptor is None:
                descriptor = self._build(tp)
                self._descriptors[tp] = descriptor
        return descriptor

    def rebuild(self, name_mapper: NameMapper | None = None) -> None:
        """Drop every descriptor, optionally switching the name mapper."""
        with self._lock:
            if name_mapper is not None:
                self._name_mapper = name_mapper
            self._descriptors = {}

    def __contains__(self, tp: object) -> bool:
        return tp in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def _build(self, tp: type) -> TypeDescriptor:
        fields: list[FieldInfo] = []
        by_name: dict[str, FieldInfo] = {}
        plan = self._walk(tp, tp, "", (), (), fields, by_name, frozenset({tp}))
        return TypeDescriptor(
            type=tp,
            fields=tuple(fields),
            by_name=types.MappingProxyType(by_name),
            plan=plan,
        )

    def _walk(
        self,
        root: type,
        tp: type,
        prefix: str,
        path: tuple[str, ...],
        index: tuple[int, ...],
        fields: list[FieldInfo],
        by_name: dict[str, FieldInfo],
        stack: frozenset[type],
    ) -> StructPlan:
        members: list[_Member] = []
        for i, declared in enumerate(_declared_fields(tp, self._tag)):
            tag_name, options = _parse_tag(declared.tag)
            annotation, nullable = _unwrap_optional(declared.annotation)
            capabilities = _capabilities(annotation)
            zero = _zero_factory(annotation, nullable)

            if tag_name == "-":
                members.append(
                    _Member(declared.attr, declared.default, zero, nullable, key=declared.key)
                )
                continue

            name = tag_name or self._name_mapper(declared.attr)
            field_path = path + (declared.attr,)
            field_index = index + (i,)

            if (
                is_structured(annotation)
                and annotation not in stack
                and Capability.SCANNER not in capabilities
            ):
                child_prefix = prefix if "inline" in options else f"{prefix}{name}."
                child = self._walk(
                    root,
                    annotation,
                    child_prefix,
                    field_path,
                    field_index,
                    fields,
                    by_name,
                    stack | {annotation},
                )
                members.append(
                    _Member(declared.attr, declared.default, zero, nullable, child, declared.key)
                )
                continue

            info = FieldInfo(
                name=prefix + name,
                path=field_path,
                index=field_index,
                options=options,
                annotation=annotation,
                nullable=nullable,
                capabilities=capabilities,
                zero=zero,
            )
            if info.name in by_name:
                raise DuplicateColumnError(root.__name__, info.name)
            by_name[info.name] = info
            fields.append(info)
            members.append(
                _Member(declared.attr, declared.default, zero, nullable, key=declared.key)
            )
        return StructPlan(type=tp, members=tuple(members))


# --- Process-wide default ---

_name_mapper: NameMapper = snake_case
_default_cache: TypeDescriptorCache | None = None
_default_lock = threading.Lock()


def set_name_mapper(name_mapper: NameMapper) -> None:
    """Set the name mapper used by the shared default cache.

    The shared cache notices the change on its next use and rebuilds.
    """
    global _name_mapper
    with _default_lock:
        _name_mapper = name_mapper


def get_name_mapper() -> NameMapper:
    return _name_mapper


def default_cache() -> TypeDescriptorCache:
    """Return the shared cache, rebuilt if the name mapper changed."""
    global _default_cache
    with _default_lock:
        if _default_cache is None:
            _default_cache = TypeDescriptorCache(_name_mapper)
        elif _default_cache.name_mapper is not _name_mapper:
            _default_cache.rebuild(_name_mapper)
        return _default_cache


def describe(tp: type) -> TypeDescriptor:
    """Describe ``tp`` with the shared default cache."""
    return default_cache().describe(tp)
