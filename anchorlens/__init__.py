"""Anchor 账户数据解码库.

提供了基于 IDL 的账户解码 (loads/load)、鉴别器计算和单类型解码功能.
"""

from .api import decode_type, load, load_schema, loads
from .config import Config
from .decoder import UNKNOWN_VARIANT, DataReader, TypeDecoder, decode
from .discriminator import (
    ACCOUNT_NAMESPACE,
    DISCRIMINATOR_SIZE,
    DiscriminatorCache,
    async_discriminator_of,
    discriminator_of,
)
from .exceptions import (
    AnchorLensError,
    BufferUnderrun,
    DecodeError,
    SchemaError,
    UnresolvedTypeError,
)
from .options import DecodeOption
from .raw import RawView
from .resolver import DecodedAccount, async_resolve_account, resolve_account
from .schema import AccountDef, Schema
from .types import (
    ArrayType,
    DefinedType,
    EnumDef,
    Field,
    IdlType,
    OptionType,
    PrimitiveType,
    StructDef,
    StructPayload,
    TuplePayload,
    UnitPayload,
    Variant,
    VecType,
    parse_type,
)

__version__ = "0.1.0"

__all__ = [
    "ACCOUNT_NAMESPACE",
    "DISCRIMINATOR_SIZE",
    "UNKNOWN_VARIANT",
    "AccountDef",
    "AnchorLensError",
    "ArrayType",
    "BufferUnderrun",
    "Config",
    "DataReader",
    "DecodeError",
    "DecodeOption",
    "DecodedAccount",
    "DefinedType",
    "DiscriminatorCache",
    "EnumDef",
    "Field",
    "IdlType",
    "OptionType",
    "PrimitiveType",
    "RawView",
    "Schema",
    "SchemaError",
    "StructDef",
    "StructPayload",
    "TuplePayload",
    "TypeDecoder",
    "UnitPayload",
    "UnresolvedTypeError",
    "Variant",
    "VecType",
    "__version__",
    "async_discriminator_of",
    "async_resolve_account",
    "decode",
    "decode_type",
    "discriminator_of",
    "load",
    "load_schema",
    "loads",
    "parse_type",
    "resolve_account",
]
