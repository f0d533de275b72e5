"""IDL 类型描述模块.

本模块定义了 IDL 支持的所有类型描述符, 包括基本类型 (`u8`、`string` 等)、
复合类型 (`vec`、`option`、`array`) 和命名引用 (`defined`),
以及结构体/枚举定义. 所有描述符在解析后都是不可变的.
"""

from dataclasses import dataclass, field
from typing import Any, Union

from .exceptions import SchemaError

# 基本类型名称 (规范名)
U8 = "u8"
I8 = "i8"
U16 = "u16"
I16 = "i16"
U32 = "u32"
I32 = "i32"
U64 = "u64"
I64 = "i64"
U128 = "u128"
I128 = "i128"
F32 = "f32"
F64 = "f64"
BOOL = "bool"
STRING = "string"
PUBLIC_KEY = "publicKey"
BYTES = "bytes"

PRIMITIVE_NAMES = frozenset(
    {
        U8,
        I8,
        U16,
        I16,
        U32,
        I32,
        U64,
        I64,
        U128,
        I128,
        F32,
        F64,
        BOOL,
        STRING,
        PUBLIC_KEY,
        BYTES,
    }
)

# 别名 -> 规范名
_PRIMITIVE_ALIASES = {"pubkey": PUBLIC_KEY}

PUBLIC_KEY_LENGTH = 32


@dataclass(frozen=True)
class PrimitiveType:
    """基本类型 (整数, 布尔, 字符串, 公钥, 字节块)."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class VecType:
    """变长同构序列: 4 字节元素数量前缀 + 元素."""

    item: "IdlType"

    def __str__(self) -> str:
        return f"vec<{self.item}>"


@dataclass(frozen=True)
class OptionType:
    """可选值: 1 字节存在标记 + 可能的值."""

    item: "IdlType"

    def __str__(self) -> str:
        return f"option<{self.item}>"


@dataclass(frozen=True)
class ArrayType:
    """定长同构序列, 没有数量前缀."""

    item: "IdlType"
    length: int

    def __str__(self) -> str:
        return f"[{self.item}; {self.length}]"


@dataclass(frozen=True)
class DefinedType:
    """对 IDL `types` 中命名类型的引用, 解码时才解析."""

    name: str

    def __str__(self) -> str:
        return f"defined<{self.name}>"


IdlType = Union[PrimitiveType, VecType, OptionType, ArrayType, DefinedType]


@dataclass(frozen=True)
class Field:
    """结构体字段 (名称, 类型). 字段顺序即线上顺序."""

    name: str
    type: IdlType


@dataclass(frozen=True)
class UnitPayload:
    """无负载的枚举变体."""


@dataclass(frozen=True)
class TuplePayload:
    """按位置排列的无名负载."""

    types: tuple[IdlType, ...]


@dataclass(frozen=True)
class StructPayload:
    """具名字段负载."""

    fields: tuple[Field, ...]


VariantPayload = Union[UnitPayload, TuplePayload, StructPayload]


@dataclass(frozen=True)
class Variant:
    """枚举变体. 其在 `EnumDef.variants` 中的位置就是线上的标签值."""

    name: str
    payload: VariantPayload = field(default_factory=UnitPayload)


@dataclass(frozen=True)
class StructDef:
    """命名结构体定义."""

    name: str
    fields: tuple[Field, ...]


@dataclass(frozen=True)
class EnumDef:
    """命名枚举定义."""

    name: str
    variants: tuple[Variant, ...]


TypeDef = Union[StructDef, EnumDef]


def parse_type(expr: Any) -> IdlType:
    """将 IDL 文档中的类型表达式解析为类型描述符.

    支持的表达式:
        - `"u8"`, `"string"`, `"publicKey"` 等基本类型名.
        - `{"vec": T}`, `{"option": T}`, `{"array": [T, N]}`.
        - `{"defined": "Name"}` 或 `{"defined": {"name": "Name"}}`.

    Args:
        expr: 从 JSON 文档中读出的类型表达式.

    Returns:
        IdlType: 对应的类型描述符.

    Raises:
        SchemaError: 表达式无法识别时.

    Examples:
        >>> str(parse_type({"vec": {"option": "u64"}}))
        'vec<option<u64>>'
    """
    if isinstance(expr, str):
        name = _PRIMITIVE_ALIASES.get(expr, expr)
        if name not in PRIMITIVE_NAMES:
            raise SchemaError(f"Unknown primitive type: {expr!r}")
        return PrimitiveType(name)

    if not isinstance(expr, dict) or len(expr) != 1:
        raise SchemaError(f"Invalid type expression: {expr!r}")

    ((kind, inner),) = expr.items()
    if kind == "vec":
        return VecType(parse_type(inner))
    if kind == "option":
        return OptionType(parse_type(inner))
    if kind == "array":
        if not isinstance(inner, list | tuple) or len(inner) != 2:
            raise SchemaError(f"Array type must be [type, length], got {inner!r}")
        item, length = inner
        # bool 是 int 的子类, 需要单独排除
        if isinstance(length, bool) or not isinstance(length, int) or length < 0:
            raise SchemaError(f"Invalid array length: {length!r}")
        return ArrayType(parse_type(item), length)
    if kind == "defined":
        if isinstance(inner, dict):
            inner = inner.get("name")
        if not isinstance(inner, str) or not inner:
            raise SchemaError(f"Invalid defined reference: {expr!r}")
        return DefinedType(inner)

    raise SchemaError(f"Unknown type kind: {kind!r}")


def parse_fields(items: list[Any]) -> tuple[Field, ...]:
    """解析 `[{"name": ..., "type": ...}, ...]` 形式的字段列表."""
    fields: list[Field] = []
    for item in items:
        if not isinstance(item, dict) or "name" not in item or "type" not in item:
            raise SchemaError(f"Field must have 'name' and 'type': {item!r}")
        if not isinstance(item["name"], str):
            raise SchemaError(f"Field name must be a string: {item['name']!r}")
        fields.append(Field(item["name"], parse_type(item["type"])))
    return tuple(fields)


def _is_named_field(item: Any) -> bool:
    return isinstance(item, dict) and "name" in item and "type" in item


def parse_variant_payload(raw: Any) -> VariantPayload:
    """解析枚举变体的 `fields` 部分.

    兼容以下几种写法:
        - 缺省 / `None`: 单元变体.
        - `[]`: 空元组负载, 解码为 `value: []`.
        - `[{"name": ..., "type": ...}, ...]`: 结构体负载.
        - `[T1, T2, ...]`: 元组负载.
        - `{"kind": "struct", "fields": [...]}`: 结构体负载.
        - `{"kind": "tuple", "types": [...]}`: 元组负载.
    """
    if raw is None:
        return UnitPayload()

    if isinstance(raw, list):
        if raw and all(_is_named_field(item) for item in raw):
            return StructPayload(parse_fields(raw))
        return TuplePayload(tuple(parse_type(item) for item in raw))

    if isinstance(raw, dict):
        kind = raw.get("kind")
        if kind == "struct":
            return StructPayload(parse_fields(raw.get("fields", [])))
        if kind == "tuple":
            return TuplePayload(tuple(parse_type(t) for t in raw.get("types", [])))

    raise SchemaError(f"Invalid variant fields: {raw!r}")
