"""账户原始数据的展示形式.

与基于 IDL 的解码相互独立: 即使解码失败, 也可以用这些形式展示原始字节.
"""

import base64
from dataclasses import dataclass

from typing_extensions import Self


def chunked_hex(data: bytes | bytearray | memoryview, chunk: int = 16) -> str:
    """以每 `chunk` 字节一组、空格分隔的形式输出小写十六进制."""
    if chunk <= 0:
        raise ValueError(f"Chunk size must be positive, got {chunk}")
    hex_str = bytes(data).hex()
    step = chunk * 2
    return " ".join(hex_str[i : i + step] for i in range(0, len(hex_str), step))


@dataclass(frozen=True)
class RawView:
    """原始数据的三种文本形式.

    Attributes:
        base64: 标准 base64 编码.
        hex: `0x` 前缀的分组十六进制.
        bytes: `[1,2,3]` 形式的十进制字节列表.
    """

    base64: str
    hex: str
    bytes: str

    @classmethod
    def from_bytes(
        cls, data: bytes | bytearray | memoryview, chunk: int = 16
    ) -> Self:
        raw = bytes(data)
        return cls(
            base64=base64.b64encode(raw).decode("ascii"),
            hex="0x" + chunked_hex(raw, chunk),
            bytes="[" + ",".join(str(b) for b in raw) + "]",
        )

    def to_dict(self) -> dict[str, str]:
        return {"base64": self.base64, "hex": self.hex, "bytes": self.bytes}
