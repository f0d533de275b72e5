"""解码选项.

该模块定义了用于控制 `loads` 和 `decode_type` 输出形态的选项标志.
"""

from enum import IntFlag


class DecodeOption(IntFlag):
    """解码选项标志.

    可以使用位运算组合多个选项:
        option = DecodeOption.NATIVE_INT64 | DecodeOption.RAW_BYTES
    """

    # 默认行为: 64/128 位整数输出十进制字符串, bytes 输出 0x 十六进制
    NONE = 0x0000

    # 64/128 位整数直接输出 int
    NATIVE_INT64 = 0x0001

    # bytes 字段直接输出 bytes 而不是十六进制字符串
    RAW_BYTES = 0x0002
