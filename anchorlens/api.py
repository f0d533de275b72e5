"""anchorlens API模块.

提供用于账户数据解码的高级接口 `loads`, `load`, `decode_type` 和 `load_schema`.
"""

from pathlib import Path
from typing import IO, Any

from .config import Config
from .decoder import decode
from .discriminator import DiscriminatorCache
from .options import DecodeOption
from .resolver import DecodedAccount, resolve_account
from .schema import Schema
from .types import IdlType, parse_type

SchemaSource = Schema | dict[str, Any] | str | bytes | Path


def load_schema(source: SchemaSource) -> Schema:
    """载入 IDL 注册表.

    Args:
        source: 已构建的 `Schema`, JSON 对象 (dict), JSON 文本, 或 JSON 文件路径.

    Returns:
        Schema: 只读注册表.

    Raises:
        SchemaError: 文档不合法时.
    """
    if isinstance(source, Schema):
        return source
    if isinstance(source, Path):
        return Schema.from_file(source)
    if isinstance(source, dict):
        return Schema.from_dict(source)
    return Schema.from_json(source)


def loads(
    data: bytes | bytearray | memoryview,
    schema: SchemaSource,
    account_name: str | None = None,
    option: DecodeOption = DecodeOption.NONE,
    *,
    max_depth: int | None = None,
    cache: DiscriminatorCache | None = None,
) -> DecodedAccount | None:
    """按 IDL 解码账户数据.

    Args:
        data: 账户原始数据 (bytes, bytearray 或 memoryview).
        schema: IDL 注册表或其来源 (见 `load_schema`).
        account_name: 显式指定账户类型. 为 None 时按鉴别器自动识别.
        option: 解码选项 (如 `DecodeOption.NATIVE_INT64`).
        max_depth: 最大嵌套深度.
        cache: 鉴别器缓存, 在多次调用之间复用以避免重复哈希.

    Returns:
        DecodedAccount: 解码结果.
        None: 自动识别没有匹配, 或指定的账户类型不存在.

    Raises:
        SchemaError: IDL 不合法.
        BufferUnderrun: 数据不完整.
        UnresolvedTypeError: 引用了不存在的类型.

    Examples:
        >>> idl = {
        ...     "accounts": [
        ...         {
        ...             "name": "Counter",
        ...             "type": {
        ...                 "kind": "struct",
        ...                 "fields": [{"name": "count", "type": "u64"}],
        ...             },
        ...         }
        ...     ]
        ... }
        >>> from anchorlens.discriminator import discriminator_of
        >>> data = discriminator_of("Counter") + (7).to_bytes(8, "little")
        >>> loads(data, idl).to_dict()
        {'accountName': 'Counter', 'data': {'count': '7'}}
    """
    config = Config.from_params(option=option, max_depth=max_depth)
    return resolve_account(
        data,
        load_schema(schema),
        account_name,
        config=config,
        cache=cache,
    )


def load(
    fp: IO[bytes],
    schema: SchemaSource,
    account_name: str | None = None,
    option: DecodeOption = DecodeOption.NONE,
    *,
    max_depth: int | None = None,
    cache: DiscriminatorCache | None = None,
) -> DecodedAccount | None:
    """从文件读取并解码账户数据.

    封装了 `read()` 和 `loads()`.
    """
    return loads(
        fp.read(),
        schema,
        account_name,
        option,
        max_depth=max_depth,
        cache=cache,
    )


def decode_type(
    data: bytes | bytearray | memoryview,
    type_: IdlType | str | dict[str, Any],
    schema: SchemaSource | None = None,
    option: DecodeOption = DecodeOption.NONE,
    *,
    offset: int = 0,
    max_depth: int | None = None,
) -> tuple[Any, int]:
    """按单个类型表达式解码.

    Args:
        data: 输入数据.
        type_: 类型描述符或 IDL 类型表达式 (如 `{"vec": "u8"}`).
        schema: 用于解析 `defined` 引用的注册表.
        option: 解码选项.
        offset: 起始偏移.
        max_depth: 最大嵌套深度.

    Returns:
        tuple[Any, int]: (值, 紧随其后的偏移).

    Examples:
        >>> decode_type(b"\\x00\\x00\\x00\\x00", {"vec": "u8"})
        ([], 4)
    """
    if isinstance(type_, str | dict):
        type_ = parse_type(type_)
    config = Config.from_params(option=option, max_depth=max_depth)
    resolved = load_schema(schema) if schema is not None else None
    return decode(data, type_, resolved, offset=offset, config=config)
