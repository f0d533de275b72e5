"""账户解析器.

根据鉴别器自动识别账户类型 (或使用调用方显式指定的类型),
剥离鉴别器前缀后按账户字段列表驱动 `TypeDecoder`.
"""

from dataclasses import dataclass
from typing import Any

from .config import Config
from .decoder import DataReader, TypeDecoder
from .discriminator import (
    DISCRIMINATOR_SIZE,
    AsyncHasher,
    DiscriminatorCache,
    Hasher,
    async_discriminator_of,
    sha256,
)
from .log import logger
from .schema import Schema
from .types import Field


@dataclass(frozen=True)
class DecodedAccount:
    """账户解码结果.

    Attributes:
        account_name: 匹配 (或指定) 的账户类型名.
        data: 按字段顺序解码出的值.
        offset: 解码开始的偏移, 剥离了鉴别器时为 8, 否则为 0.
    """

    account_name: str
    data: dict[str, Any]
    offset: int = DISCRIMINATOR_SIZE

    @property
    def discriminator_matched(self) -> bool:
        """数据开头是否为该账户类型的鉴别器."""
        return self.offset == DISCRIMINATOR_SIZE

    def to_dict(self) -> dict[str, Any]:
        """转换为展示层使用的 `{"accountName": ..., "data": ...}` 结构."""
        return {"accountName": self.account_name, "data": self.data}


def _decode_body(
    data: bytes | bytearray | memoryview,
    name: str,
    fields: tuple[Field, ...],
    offset: int,
    schema: Schema,
    config: Config | None,
) -> DecodedAccount:
    reader = DataReader(data, offset)
    decoder = TypeDecoder(reader, schema, config)
    return DecodedAccount(name, decoder.decode_fields(fields), offset)


def resolve_account(
    data: bytes | bytearray | memoryview,
    schema: Schema,
    account_name: str | None = None,
    *,
    config: Config | None = None,
    hasher: Hasher | None = None,
    cache: DiscriminatorCache | None = None,
) -> DecodedAccount | None:
    """解析账户数据.

    自动识别模式 (`account_name` 为 None):
        按声明顺序比较每个账户类型的鉴别器与数据前 8 字节, 第一个完全匹配的
        类型胜出, 剥离 8 字节后解码. 没有匹配时返回 None (这不是错误).

    显式模式:
        数据至少 8 字节时比较该类型的鉴别器, 匹配则跳过 8 字节, 不匹配则从
        偏移 0 开始解码; 数据不足 8 字节时不做比较, 直接从偏移 0 解码.
        只有账户类型名不存在时才返回 None.

    Args:
        data: 账户原始数据.
        schema: IDL 注册表.
        account_name: 显式指定的账户类型名.
        config: 解码配置.
        hasher: 自定义哈希函数 (默认 sha256), 提供 `cache` 时被忽略.
        cache: 鉴别器缓存, 可以在多次调用之间复用.

    Returns:
        DecodedAccount | None: 解码结果, 或 None 表示没有可用的解释.

    Raises:
        DecodeError: 匹配到类型但解码失败时.
    """
    if cache is None:
        cache = DiscriminatorCache(hasher or sha256)
    head = bytes(data[:DISCRIMINATOR_SIZE])

    if account_name is not None:
        fields = schema.account_fields_of(account_name)
        if fields is None:
            logger.debug("[Resolver] 未知的账户类型 %r", account_name)
            return None
        offset = 0
        if len(head) == DISCRIMINATOR_SIZE and cache.get(account_name) == head:
            offset = DISCRIMINATOR_SIZE
        logger.debug("[Resolver] 显式解码 %s (偏移 %d)", account_name, offset)
        return _decode_body(data, account_name, fields, offset, schema, config)

    if len(head) < DISCRIMINATOR_SIZE:
        logger.debug("[Resolver] 数据不足 %d 字节, 无法识别", DISCRIMINATOR_SIZE)
        return None

    for name in schema.account_names:
        if cache.get(name) != head:
            continue
        fields = schema.account_fields_of(name)
        if fields is None:
            logger.debug("[Resolver] %s 的鉴别器匹配但找不到字段定义, 跳过", name)
            continue
        logger.debug("[Resolver] 鉴别器匹配账户类型 %s", name)
        return _decode_body(data, name, fields, DISCRIMINATOR_SIZE, schema, config)

    logger.debug("[Resolver] 没有账户类型匹配鉴别器 %s", head.hex())
    return None


async def async_resolve_account(
    data: bytes | bytearray | memoryview,
    schema: Schema,
    hasher: AsyncHasher,
    account_name: str | None = None,
    *,
    config: Config | None = None,
) -> DecodedAccount | None:
    """`resolve_account` 的异步版本, 用于异步提供的哈希能力.

    候选类型按声明顺序依次等待, 匹配后不再计算后续候选的鉴别器.
    每次比较之间调用方都可以取消.
    """
    head = bytes(data[:DISCRIMINATOR_SIZE])

    if account_name is not None:
        fields = schema.account_fields_of(account_name)
        if fields is None:
            return None
        offset = 0
        if len(head) == DISCRIMINATOR_SIZE:
            disc = await async_discriminator_of(account_name, hasher)
            if disc == head:
                offset = DISCRIMINATOR_SIZE
        return _decode_body(data, account_name, fields, offset, schema, config)

    if len(head) < DISCRIMINATOR_SIZE:
        return None

    for name in schema.account_names:
        if await async_discriminator_of(name, hasher) != head:
            continue
        fields = schema.account_fields_of(name)
        if fields is None:
            continue
        logger.debug("[Resolver] 鉴别器匹配账户类型 %s", name)
        return _decode_body(data, name, fields, DISCRIMINATOR_SIZE, schema, config)

    return None
