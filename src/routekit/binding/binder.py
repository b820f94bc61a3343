"""
=============================================================================
RECORD BINDING
=============================================================================

Maps raw request values onto a typed record through a field association
table declared once per record type:

    @dataclass
    class User:
        name: str = ""
        email: str = ""

    USER = RecordBinding(User, [
        FieldBinding("name", str, json="name", form="name", query="name"),
        FieldBinding("email", str, json="email", form="email", query="email"),
    ])

Each FieldBinding says which key the field is read from in each source. A
field with no key for a source is simply never read from it.

=============================================================================
LAYERS
=============================================================================

A request can feed several sources at once (path, query, body). bind()
takes them as ordered layers and applies them in order, so a later layer
overrides an earlier one for the same field:

    bind(USER, [(Source.QUERY, {"name": ["q"]}),
                (Source.JSON,  {"name": ["j"]})])   → User(name="j")

Fields that no layer supplies keep the zero value of their type. A missing
required field therefore binds without complaint; catching it is the
validator's job.

=============================================================================
COERCION
=============================================================================

    declared   accepts                              rejects
    ────────   ───────────────────────────────────  ─────────────────────
    str        any string                           JSON numbers, bools
    int        JSON integers, "42", "-7"            "4.2", "abc", true
    float      JSON numbers, "4.2", "1e3"           "abc", true
    bool       JSON bools, "true", "0", "F", ...    "yes", 1

An empty string binds to the zero value of a non-string type, the way
form and query parameters conventionally leave numeric fields unset.
JSON null always binds to the zero value.

=============================================================================
"""

from dataclasses import dataclass, fields as dataclass_fields
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import re

from ..errors import BindError
from .extractor import RawFieldMap, Source
from .validator import Constraint


ZERO_VALUES: Dict[type, Any] = {str: "", int: 0, float: 0.0, bool: False}

_INT_PATTERN = re.compile(r"^[+-]?\d+$")
_TRUE_STRINGS = {"1", "t", "T", "true", "TRUE", "True"}
_FALSE_STRINGS = {"0", "f", "F", "false", "FALSE", "False"}


@dataclass(frozen=True)
class FieldBinding:
    """
    Declares where one record attribute comes from.

    Attributes:
        attr: Attribute name on the record.
        type: One of str, int, float, bool.
        json / form / query / path: Key of the field in that source.
    """

    attr: str
    type: type = str
    json: Optional[str] = None
    form: Optional[str] = None
    query: Optional[str] = None
    path: Optional[str] = None

    def __post_init__(self):
        if self.type not in ZERO_VALUES:
            raise TypeError(f"Unsupported field type for {self.attr!r}: {self.type!r}")

    def key_for(self, source: Source) -> Optional[str]:
        return {
            Source.PATH: self.path,
            Source.QUERY: self.query,
            Source.FORM: self.form,
            Source.JSON: self.json,
        }.get(source)

    @property
    def zero(self) -> Any:
        return ZERO_VALUES[self.type]


class RecordBinding:
    """
    The association table for one record type, plus its constraints.

    The table is checked against the record type when it is declared, so a
    typo in an attribute name fails at import time rather than on the
    first request.
    """

    def __init__(
        self,
        record_type: type,
        fields: Sequence[FieldBinding],
        constraints: Sequence[Constraint] = (),
    ):
        self.record_type = record_type
        self.fields: Tuple[FieldBinding, ...] = tuple(fields)
        self.constraints: Tuple[Constraint, ...] = tuple(constraints)

        declared = {f.name for f in dataclass_fields(record_type)}
        bound = [fb.attr for fb in self.fields]
        unknown = [attr for attr in bound if attr not in declared]
        if unknown:
            raise ValueError(f"{record_type.__name__} has no field(s) {unknown}")
        if len(set(bound)) != len(bound):
            raise ValueError(f"{record_type.__name__}: field bound twice")

        unbound = [c.field for c in self.constraints if c.field not in bound]
        if unbound:
            raise ValueError(f"{record_type.__name__}: constraints on unbound field(s) {unbound}")

    @property
    def name(self) -> str:
        return self.record_type.__name__

    def to_dict(self, record: Any) -> Dict[str, Any]:
        """
        Render a record under its JSON keys.

        Fields without a JSON key are rendered under their attribute name.
        """
        return {fb.json or fb.attr: getattr(record, fb.attr) for fb in self.fields}

    def __repr__(self) -> str:
        return f"RecordBinding({self.name}, fields={[fb.attr for fb in self.fields]})"


# =============================================================================
# COERCION
# =============================================================================

def coerce(field: FieldBinding, raw: Any) -> Any:
    """
    Convert one raw value to the field's declared type.

    Raises:
        BindError: If the value cannot represent that type.
    """
    if raw is None:
        return field.zero

    target = field.type

    if target is str:
        if isinstance(raw, str):
            return raw
        raise BindError(field.attr, raw, "str")

    if isinstance(raw, str) and raw == "":
        return field.zero

    if target is bool:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str) and raw in _TRUE_STRINGS:
            return True
        if isinstance(raw, str) and raw in _FALSE_STRINGS:
            return False
        raise BindError(field.attr, raw, "bool")

    # bool is an int subclass; true/false is never a number here
    if isinstance(raw, bool):
        raise BindError(field.attr, raw, target.__name__)

    if target is int:
        if isinstance(raw, int):
            return raw
        if isinstance(raw, str) and _INT_PATTERN.match(raw):
            return int(raw)
        raise BindError(field.attr, raw, "int")

    # float
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        try:
            return float(raw)
        except ValueError:
            pass
    raise BindError(field.attr, raw, "float")


# =============================================================================
# BINDING
# =============================================================================

def bind(binding: RecordBinding, layers: Iterable[Tuple[Source, RawFieldMap]]) -> Any:
    """
    Build a record from ordered (source, raw field map) layers.

    Args:
        binding: The record's association table.
        layers: Sources in application order; later ones win.

    Returns:
        A new record instance.

    Raises:
        BindError: For the first value that fails coercion.
    """
    values: Dict[str, Any] = {fb.attr: fb.zero for fb in binding.fields}

    for source, raw in layers:
        for fb in binding.fields:
            key = fb.key_for(source)
            if key is None or key not in raw:
                continue
            candidates: List[Any] = raw[key]
            if candidates:
                values[fb.attr] = coerce(fb, candidates[0])

    return binding.record_type(**values)


def bind_map(binding: RecordBinding, raw: RawFieldMap, source: Source) -> Any:
    """Bind from a single raw field map."""
    return bind(binding, [(source, raw)])
