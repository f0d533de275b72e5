"""解码配置对象."""

from dataclasses import dataclass

from .options import DecodeOption

# 安全限制
DEFAULT_MAX_DEPTH = 64
DEFAULT_MAX_CONTAINER_SIZE = 10_000_000  # 1000万元素


@dataclass(frozen=True)
class Config:
    """解码配置 (不可变).

    在 API 入口层创建, 然后传递给 Resolver/Decoder 内核.

    Attributes:
        flags: 解码选项标志 (IntFlag).
        max_depth: `defined`/容器 的最大嵌套深度.
        max_container_size: vec 元素数量上限.
    """

    flags: DecodeOption = DecodeOption.NONE
    max_depth: int = DEFAULT_MAX_DEPTH
    max_container_size: int = DEFAULT_MAX_CONTAINER_SIZE

    @classmethod
    def from_params(
        cls,
        option: DecodeOption = DecodeOption.NONE,
        max_depth: int | None = None,
        max_container_size: int | None = None,
    ) -> "Config":
        """从参数构建配置对象.

        Args:
            option: DecodeOption 枚举.
            max_depth: 最大嵌套深度, None 表示使用默认值.
            max_container_size: vec 元素数量上限, None 表示使用默认值.

        Returns:
            Config: 配置对象.
        """
        return cls(
            flags=DecodeOption(option),
            max_depth=DEFAULT_MAX_DEPTH if max_depth is None else max_depth,
            max_container_size=(
                DEFAULT_MAX_CONTAINER_SIZE
                if max_container_size is None
                else max_container_size
            ),
        )

    @property
    def native_int64(self) -> bool:
        """是否以 int 输出 64/128 位整数."""
        return bool(self.flags & DecodeOption.NATIVE_INT64)

    @property
    def raw_bytes(self) -> bool:
        """是否以 bytes 输出 bytes 字段."""
        return bool(self.flags & DecodeOption.RAW_BYTES)
