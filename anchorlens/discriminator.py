"""账户鉴别器.

鉴别器是账户数据开头的 8 个字节, 取值为
`sha256("account:" + 账户类型名)` 的前 8 个字节. 通过它可以在不知道账户类型
的情况下识别出数据对应 IDL 中的哪个账户类型.
"""

import hashlib
from collections.abc import Awaitable, Callable

ACCOUNT_NAMESPACE = "account:"
DISCRIMINATOR_SIZE = 8

Hasher = Callable[[bytes], bytes]
AsyncHasher = Callable[[bytes], Awaitable[bytes]]


def sha256(data: bytes) -> bytes:
    """默认的哈希实现."""
    return hashlib.sha256(data).digest()


def _preimage(name: str) -> bytes:
    return (ACCOUNT_NAMESPACE + name).encode("utf-8")


def _truncate(digest: bytes, name: str) -> bytes:
    if len(digest) < DISCRIMINATOR_SIZE:
        raise ValueError(
            f"Hasher returned {len(digest)} bytes for {name!r}, "
            f"need at least {DISCRIMINATOR_SIZE}"
        )
    return bytes(digest[:DISCRIMINATOR_SIZE])


def discriminator_of(name: str, hasher: Hasher = sha256) -> bytes:
    """计算账户类型的 8 字节鉴别器.

    Args:
        name: 账户类型名 (区分大小写, 不做任何规范化).
        hasher: 哈希函数, 输入原像字节, 返回摘要.

    Returns:
        bytes: 摘要的前 8 个字节.

    Examples:
        >>> discriminator_of("Vault") == hashlib.sha256(b"account:Vault").digest()[:8]
        True
    """
    return _truncate(hasher(_preimage(name)), name)


async def async_discriminator_of(name: str, hasher: AsyncHasher) -> bytes:
    """`discriminator_of` 的异步版本, 用于异步提供的哈希能力."""
    return _truncate(await hasher(_preimage(name)), name)


class DiscriminatorCache:
    """按账户类型名缓存鉴别器.

    同一个名称只计算一次. 结果是确定性的, 因此多个调用方共享同一个缓存是安全的.
    """

    __slots__ = ("_cache", "_hasher")

    _cache: dict[str, bytes]
    _hasher: Hasher

    def __init__(self, hasher: Hasher = sha256) -> None:
        self._hasher = hasher
        self._cache = {}

    @property
    def hasher(self) -> Hasher:
        return self._hasher

    def get(self, name: str) -> bytes:
        """获取 (必要时计算) 鉴别器."""
        disc = self._cache.get(name)
        if disc is None:
            disc = discriminator_of(name, self._hasher)
            self._cache[name] = disc
        return disc

    def __contains__(self, name: object) -> bool:
        return name in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def clear(self) -> None:
        """清空缓存."""
        self._cache.clear()
