"""anchorlens 异常类.

该模块为账户解码库定义了异常层次结构.
"""


class AnchorLensError(Exception):
    """所有 anchorlens 异常的基类."""

    pass


class SchemaError(AnchorLensError, ValueError):
    """IDL 文档无法解析时抛出.

    Case:
        - 文档不是合法的 JSON.
        - 缺少必需的键 (如 `name`, `type`).
        - 未知的基本类型名 (如 `u7`).
        - 重复的类型或账户名.

    该异常总是在任何解码开始之前抛出.
    """

    pass


class DecodeError(AnchorLensError):
    """解码失败时抛出.

    Case:
        - 数据被截断 (见 `BufferUnderrun`).
        - 引用了未声明的类型 (见 `UnresolvedTypeError`).
        - 嵌套深度或容器长度超过限制.
    """

    def __init__(
        self,
        msg: str,
        loc: list[str | int] | None = None,
        offset: int | None = None,
    ) -> None:
        """初始化解码错误.

        Args:
            msg: 错误描述信息.
            loc: 错误发生的位置路径 (字段名 或 索引).
            offset: 出错时游标所在的字节偏移.
        """
        super().__init__(msg)
        self.loc = loc or []
        self.offset = offset

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.loc:
            loc_str = ".".join(str(x) for x in self.loc)
            return f"{base_msg} (at {loc_str})"
        return base_msg


class BufferUnderrun(DecodeError):
    """读取需要的字节数超过剩余数据时抛出.

    这会中止整个解码过程, 部分结构不会被返回.
    """

    def __init__(
        self,
        msg: str,
        offset: int,
        needed: int,
        available: int,
        loc: list[str | int] | None = None,
    ) -> None:
        """初始化缓冲区不足错误.

        Args:
            msg: 错误描述信息.
            offset: 读取开始的字节偏移.
            needed: 需要的字节数.
            available: 剩余可用的字节数.
            loc: 错误发生的位置路径.
        """
        super().__init__(msg, loc=loc, offset=offset)
        self.needed = needed
        self.available = available


class UnresolvedTypeError(DecodeError):
    """`defined` 引用的类型在 IDL 中不存在时抛出."""

    def __init__(
        self,
        type_name: str,
        offset: int | None = None,
        loc: list[str | int] | None = None,
    ) -> None:
        """初始化未解析类型错误.

        Args:
            type_name: 无法解析的类型名.
            offset: 出错时游标所在的字节偏移.
            loc: 错误发生的位置路径.
        """
        super().__init__(
            f"Unresolved defined type: {type_name!r}", loc=loc, offset=offset
        )
        self.type_name = type_name
