"""anchorlens 日志记录器.

库本身不配置 Handler, 由调用方决定日志输出. 解码失败时 `TypeDecoder` 会在
DEBUG 级别附带出错位置附近的十六进制转储, 便于对照账户原始数据排查.
"""

import logging

logger = logging.getLogger("anchorlens")


def get_hexdump(
    data: bytes | bytearray | memoryview, pos: int, window: int = 16
) -> str:
    """截取 `pos` 前后各 `window` 字节, 格式化为空格分隔的十六进制.

    Args:
        data: 账户数据.
        pos: 出错的偏移, 可以超出数据末尾 (数据不足时常见).
        window: 单侧显示的字节数.

    Returns:
        str: 带位置说明的多行文本.
    """
    start = max(0, min(pos, len(data)) - window)
    end = min(len(data), pos + window)
    return (
        f"位置 {pos} 的上下文 (显示 {start}-{end}):\n"
        f"{bytes(data[start:end]).hex(' ')}"
    )
