"""IDL 类型解码器实现.

该模块提供用于零复制读取的 `DataReader` 和
按类型描述符递归下降解码的 `TypeDecoder`.
"""

import struct
from collections.abc import Callable
from typing import Any, cast

from solders.pubkey import Pubkey

from .config import Config
from .exceptions import BufferUnderrun, DecodeError, UnresolvedTypeError
from .log import get_hexdump, logger
from .schema import Schema
from .types import (
    BOOL,
    BYTES,
    F32,
    F64,
    I8,
    I16,
    I32,
    I64,
    I128,
    PUBLIC_KEY,
    PUBLIC_KEY_LENGTH,
    STRING,
    U8,
    U16,
    U32,
    U64,
    U128,
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
    VecType,
)

# 预编译的结构体打包器 (所有多字节整数均为小端序)
_STRUCT_b = struct.Struct("<b")
_STRUCT_H = struct.Struct("<H")
_STRUCT_h = struct.Struct("<h")
_STRUCT_I = struct.Struct("<I")
_STRUCT_i = struct.Struct("<i")
_STRUCT_Q = struct.Struct("<Q")
_STRUCT_q = struct.Struct("<q")
_STRUCT_f = struct.Struct("<f")
_STRUCT_d = struct.Struct("<d")

# 未知枚举标签的变体名
UNKNOWN_VARIANT = "Unknown"

# 基本类型在线上至少占用的字节数 (变长类型只计长度前缀)
_MIN_WIDTHS = {
    U8: 1,
    I8: 1,
    BOOL: 1,
    U16: 2,
    I16: 2,
    U32: 4,
    I32: 4,
    F32: 4,
    U64: 8,
    I64: 8,
    F64: 8,
    U128: 16,
    I128: 16,
    STRING: 4,
    BYTES: 4,
    PUBLIC_KEY: PUBLIC_KEY_LENGTH,
}


class DataReader:
    """账户数据的零复制读取器.

    包装 memoryview 提供游标式读取. 游标只会向前移动,
    任何越过数据末尾的读取都会抛出 `BufferUnderrun`, 且不移动游标.
    """

    __slots__ = ("_pos", "_view", "length")

    _view: memoryview
    _pos: int
    length: int

    def __init__(self, data: bytes | bytearray | memoryview, offset: int = 0):
        """初始化 DataReader.

        Args:
            data: 要读取的二进制数据.
            offset: 起始偏移.

        Raises:
            ValueError: 起始偏移超出数据范围时.
        """
        if offset < 0 or offset > len(data):
            raise ValueError(f"Offset {offset} out of range for {len(data)} bytes")
        self._view = memoryview(data).cast("B")
        self._pos = offset
        self.length = len(self._view)

    @property
    def pos(self) -> int:
        """当前游标位置."""
        return self._pos

    @property
    def remaining(self) -> int:
        """剩余未读字节数."""
        return self.length - self._pos

    @property
    def eof(self) -> bool:
        """检查是否到达数据末尾."""
        return self._pos >= self.length

    @property
    def data(self) -> memoryview:
        """底层数据视图."""
        return self._view

    def _require(self, size: int, what: str) -> None:
        if self._pos + size > self.length:
            available = self.length - self._pos
            raise BufferUnderrun(
                f"Not enough data to read {what}: need {size} bytes at offset "
                f"{self._pos}, {available} available",
                offset=self._pos,
                needed=size,
                available=available,
            )

    def read_bytes(self, length: int) -> bytes:
        """读取字节序列.

        Args:
            length: 要读取的字节数.

        Returns:
            包含数据的 bytes.

        Raises:
            BufferUnderrun: 如果没有足够的数据可用.
        """
        if length < 0:
            raise DecodeError(f"Cannot read negative bytes: {length}", offset=self._pos)
        self._require(length, f"{length} bytes")
        start = self._pos
        self._pos += length
        return self._view[start : self._pos].tobytes()

    def read_u8(self) -> int:
        """读取无符号8位整数."""
        self._require(1, U8)
        val = self._view[self._pos]
        self._pos += 1
        return val

    def _unpack(self, packer: struct.Struct, what: str) -> Any:
        self._require(packer.size, what)
        val = packer.unpack_from(self._view, self._pos)[0]
        self._pos += packer.size
        return val

    def read_i8(self) -> int:
        """读取有符号8位整数."""
        return cast(int, self._unpack(_STRUCT_b, I8))

    def read_u16(self) -> int:
        """读取无符号16位整数."""
        return cast(int, self._unpack(_STRUCT_H, U16))

    def read_i16(self) -> int:
        """读取有符号16位整数."""
        return cast(int, self._unpack(_STRUCT_h, I16))

    def read_u32(self) -> int:
        """读取无符号32位整数."""
        return cast(int, self._unpack(_STRUCT_I, U32))

    def read_i32(self) -> int:
        """读取有符号32位整数."""
        return cast(int, self._unpack(_STRUCT_i, I32))

    def read_u64(self) -> int:
        """读取无符号64位整数."""
        return cast(int, self._unpack(_STRUCT_Q, U64))

    def read_i64(self) -> int:
        """读取有符号64位整数."""
        return cast(int, self._unpack(_STRUCT_q, I64))

    def read_u128(self) -> int:
        """读取无符号128位整数."""
        return int.from_bytes(self._read_wide(U128), "little", signed=False)

    def read_i128(self) -> int:
        """读取有符号128位整数."""
        return int.from_bytes(self._read_wide(I128), "little", signed=True)

    def _read_wide(self, what: str) -> bytes:
        self._require(16, what)
        start = self._pos
        self._pos += 16
        return self._view[start : self._pos].tobytes()

    def read_f32(self) -> float:
        """读取4字节浮点数."""
        return cast(float, self._unpack(_STRUCT_f, F32))

    def read_f64(self) -> float:
        """读取8字节双精度浮点数."""
        return cast(float, self._unpack(_STRUCT_d, F64))


# 直接输出原生数值的定宽类型
_NUMERIC_READERS: dict[str, Callable[[DataReader], Any]] = {
    U8: DataReader.read_u8,
    I8: DataReader.read_i8,
    U16: DataReader.read_u16,
    I16: DataReader.read_i16,
    U32: DataReader.read_u32,
    I32: DataReader.read_i32,
    F32: DataReader.read_f32,
    F64: DataReader.read_f64,
}

# 超出安全整数范围, 默认输出十进制字符串
_WIDE_READERS: dict[str, Callable[[DataReader], int]] = {
    U64: DataReader.read_u64,
    I64: DataReader.read_i64,
    U128: DataReader.read_u128,
    I128: DataReader.read_i128,
}


class TypeDecoder:
    """基于 IDL 的递归下降解码器.

    按类型描述符消费 `DataReader` 中的字节, 生成由 dict / list / 基本值组成的
    值树. 每个实例只用于一次解码会话, 不在调用之间保留状态.
    """

    __slots__ = ("_config", "_depth", "_reader", "_schema", "_widths")

    _reader: DataReader
    _schema: Schema | None
    _config: Config
    _depth: int
    _widths: dict[IdlType, int]

    def __init__(
        self,
        reader: DataReader,
        schema: Schema | None = None,
        config: Config | None = None,
    ):
        self._reader = reader
        self._schema = schema
        self._config = config or Config()
        self._depth = 0
        self._widths = {}

    @property
    def reader(self) -> DataReader:
        return self._reader

    def decode(self, type_: IdlType, suppress_log: bool = False) -> Any:
        """从当前游标位置解码一个值."""
        return self._run(lambda: self._decode(type_), str(type_), suppress_log)

    def decode_fields(
        self, fields: tuple[Field, ...], suppress_log: bool = False
    ) -> dict[str, Any]:
        """按声明顺序解码一组字段 (账户或结构体主体)."""
        return self._run(
            lambda: self._decode_fields(fields), f"{len(fields)} 个字段", suppress_log
        )

    def _run(self, step: Callable[[], Any], what: str, suppress_log: bool) -> Any:
        start = self._reader.pos
        if not suppress_log:
            logger.debug(
                "[TypeDecoder] 开始解码 %s (偏移 %d, 共 %d 字节)",
                what,
                start,
                self._reader.length,
            )
        try:
            value = step()
        except RecursionError as e:
            # max_depth 超过解释器的递归上限时
            raise DecodeError(
                f"Nesting too deep while decoding {what} "
                f"(max_depth={self._config.max_depth})",
                offset=self._reader.pos,
            ) from e
        except DecodeError as e:
            if not suppress_log:
                pos = e.offset if e.offset is not None else self._reader.pos
                logger.debug(
                    "[TypeDecoder] 解码失败: %s\n%s",
                    e,
                    get_hexdump(self._reader.data, pos),
                )
            raise
        except Exception as e:
            if not suppress_log:
                logger.error("[TypeDecoder] 解码 %s 时出错: %s", what, e)
            raise

        if not suppress_log:
            logger.debug(
                "[TypeDecoder] 成功解码, 消耗 %d 字节", self._reader.pos - start
            )
        return value

    def _decode(self, type_: IdlType) -> Any:
        if isinstance(type_, PrimitiveType):
            return self._decode_primitive(type_.name)
        if isinstance(type_, VecType):
            return self._decode_vec(type_.item)
        if isinstance(type_, OptionType):
            flag = self._reader.read_u8()
            if flag == 0:
                return None
            return self._decode(type_.item)
        if isinstance(type_, ArrayType):
            return self._decode_sequence(type_.item, type_.length)
        if isinstance(type_, DefinedType):
            return self._decode_defined(type_.name)
        raise DecodeError(f"Unsupported type descriptor: {type_!r}")

    def _decode_primitive(self, name: str) -> Any:
        reader = self._reader

        numeric = _NUMERIC_READERS.get(name)
        if numeric is not None:
            return numeric(reader)

        wide = _WIDE_READERS.get(name)
        if wide is not None:
            val = wide(reader)
            return val if self._config.native_int64 else str(val)

        if name == BOOL:
            # 任何非零字节都视为 True
            return reader.read_u8() != 0
        if name == STRING:
            length = reader.read_u32()
            return reader.read_bytes(length).decode("utf-8", errors="replace")
        if name == PUBLIC_KEY:
            raw = reader.read_bytes(PUBLIC_KEY_LENGTH)
            return str(Pubkey.from_bytes(raw))
        if name == BYTES:
            length = reader.read_u32()
            raw = reader.read_bytes(length)
            return raw if self._config.raw_bytes else "0x" + raw.hex()

        raise DecodeError(f"Unknown primitive type: {name!r}", offset=reader.pos)

    def _decode_vec(self, item: IdlType) -> list[Any]:
        reader = self._reader
        count = reader.read_u32()
        if count > self._config.max_container_size:
            raise DecodeError(
                f"Vec length {count} exceeds max limit "
                f"{self._config.max_container_size}",
                offset=reader.pos - 4,
            )

        width = self._min_width(item) if count else 0
        if count and width == 0:
            # 零宽元素不受剩余字节约束, 按每个元素 1 字节限制长度
            if count > reader.remaining:
                raise DecodeError(
                    f"Vec length {count} of zero-sized {item} exceeds "
                    f"{reader.remaining} remaining bytes",
                    offset=reader.pos - 4,
                )
        elif count * width > reader.remaining:
            raise BufferUnderrun(
                f"Not enough data for vec of {count} x {item}: need at least "
                f"{count * width} bytes at offset {reader.pos}, "
                f"{reader.remaining} available",
                offset=reader.pos,
                needed=count * width,
                available=reader.remaining,
            )
        return self._decode_sequence(item, count)

    def _min_width(self, type_: IdlType, seen: frozenset[str] = frozenset()) -> int:
        """类型在线上至少占用的字节数."""
        cached = self._widths.get(type_)
        if cached is not None:
            return cached

        if isinstance(type_, PrimitiveType):
            width = _MIN_WIDTHS.get(type_.name, 0)
        elif isinstance(type_, VecType):
            width = 4
        elif isinstance(type_, OptionType):
            width = 1
        elif isinstance(type_, ArrayType):
            width = type_.length * self._min_width(type_.item, seen)
        elif isinstance(type_, DefinedType):
            if type_.name in seen:
                return 0
            definition = (
                self._schema.resolve_defined(type_.name) if self._schema else None
            )
            if isinstance(definition, StructDef):
                inner = seen | {type_.name}
                width = sum(self._min_width(f.type, inner) for f in definition.fields)
            elif isinstance(definition, EnumDef):
                width = 1
            else:
                raise UnresolvedTypeError(type_.name, offset=self._reader.pos)
        else:
            width = 0

        if not seen:
            self._widths[type_] = width
        return width

    def _decode_sequence(self, item: IdlType, count: int) -> list[Any]:
        result: list[Any] = []
        for index in range(count):
            try:
                result.append(self._decode(item))
            except DecodeError as e:
                e.loc.insert(0, index)
                raise
        return result

    def _decode_fields(self, fields: tuple[Field, ...]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for field in fields:
            try:
                result[field.name] = self._decode(field.type)
            except DecodeError as e:
                e.loc.insert(0, field.name)
                raise
        return result

    def _decode_defined(self, name: str) -> Any:
        definition = self._schema.resolve_defined(name) if self._schema else None
        if definition is None:
            raise UnresolvedTypeError(name, offset=self._reader.pos)

        if self._depth >= self._config.max_depth:
            raise DecodeError(
                f"Maximum nesting depth {self._config.max_depth} exceeded "
                f"while decoding {name!r}",
                offset=self._reader.pos,
            )
        self._depth += 1
        try:
            if isinstance(definition, StructDef):
                return self._decode_fields(definition.fields)
            return self._decode_enum(definition)
        finally:
            self._depth -= 1

    def _decode_enum(self, definition: EnumDef) -> dict[str, Any]:
        tag = self._reader.read_u8()
        if tag >= len(definition.variants):
            # 无法得知未知变体的负载形状, 只消费标签字节
            logger.debug(
                "[TypeDecoder] 枚举 %s 的标签 %d 超出 %d 个变体",
                definition.name,
                tag,
                len(definition.variants),
            )
            return {"tag": tag, "name": UNKNOWN_VARIANT}

        variant = definition.variants[tag]
        result: dict[str, Any] = {"tag": tag, "name": variant.name}
        payload = variant.payload
        try:
            if isinstance(payload, StructPayload):
                result["value"] = self._decode_fields(payload.fields)
            elif isinstance(payload, TuplePayload):
                values: list[Any] = []
                for index, item in enumerate(payload.types):
                    try:
                        values.append(self._decode(item))
                    except DecodeError as e:
                        e.loc.insert(0, index)
                        raise
                result["value"] = values
        except DecodeError as e:
            e.loc.insert(0, variant.name)
            raise
        return result


def decode(
    data: bytes | bytearray | memoryview,
    type_: IdlType,
    schema: Schema | None = None,
    offset: int = 0,
    config: Config | None = None,
) -> tuple[Any, int]:
    """从 `offset` 开始解码一个值.

    Args:
        data: 输入的二进制数据.
        type_: 类型描述符.
        schema: 用于解析 `defined` 引用的注册表.
        offset: 起始偏移.
        config: 解码配置.

    Returns:
        tuple[Any, int]: (解码出的值, 紧随其后的偏移).

    Raises:
        BufferUnderrun: 数据不足时.
        UnresolvedTypeError: 引用了不存在的类型时.
        DecodeError: 其他解码错误.

    Examples:
        >>> decode(b"\\x03\\x00\\x00\\x00abc", PrimitiveType("string"))
        ('abc', 7)
    """
    reader = DataReader(data, offset)
    decoder = TypeDecoder(reader, schema, config)
    value = decoder.decode(type_)
    return value, reader.pos
