"""测试 IDL 类型解码器."""

import struct
import sys
from typing import Any

import pytest
from conftest import VAULT_DATA, ZERO_PUBKEY, u32le, u64le, vault_body
from solders.pubkey import Pubkey

from anchorlens import (
    UNKNOWN_VARIANT,
    BufferUnderrun,
    Config,
    DataReader,
    DecodeError,
    DecodeOption,
    DefinedType,
    Schema,
    TypeDecoder,
    UnresolvedTypeError,
    decode,
    parse_type,
)

# --- DataReader 测试 ---


def test_reader_basic_read() -> None:
    """read_bytes() 应能正确读取指定长度并移动指针."""
    reader = DataReader(b"\x01\x02\x03\x04")

    assert reader.read_bytes(1) == b"\x01"
    assert reader.pos == 1
    assert reader.read_bytes(2) == b"\x02\x03"
    assert reader.pos == 3
    assert reader.remaining == 1
    assert not reader.eof


def test_reader_underrun_does_not_move() -> None:
    """越界读取应抛出 BufferUnderrun 且不移动指针."""
    reader = DataReader(b"\x01\x02\x03")
    reader.read_u8()

    with pytest.raises(BufferUnderrun) as exc_info:
        reader.read_u32()

    err = exc_info.value
    assert err.offset == 1
    assert err.needed == 4
    assert err.available == 2
    assert reader.pos == 1


def test_reader_offset() -> None:
    """可以从指定偏移开始读取, 越界的偏移应被拒绝."""
    reader = DataReader(b"\x00\x00\x2a", offset=2)
    assert reader.read_u8() == 42
    assert reader.eof

    with pytest.raises(ValueError):
        DataReader(b"\x00", offset=2)


def test_reader_negative_length() -> None:
    """负数长度应抛出 DecodeError."""
    with pytest.raises(DecodeError):
        DataReader(b"\x00").read_bytes(-1)


# --- 基本类型 ---

PRIMITIVE_CASES = [
    ("u8", b"\xff", 255, "u8"),
    ("i8", b"\xff", -1, "i8"),
    ("u16", b"\x34\x12", 0x1234, "u16 小端"),
    ("i16", b"\xfe\xff", -2, "i16"),
    ("u32", u32le(0xDEADBEEF), 0xDEADBEEF, "u32"),
    ("i32", b"\xff\xff\xff\xff", -1, "i32"),
    ("u64", b"\xff" * 8, "18446744073709551615", "u64 输出字符串"),
    ("i64", b"\xff" * 8, "-1", "i64 输出字符串"),
    ("u128", b"\xff" * 16, str(2**128 - 1), "u128 输出字符串"),
    ("i128", b"\xfe" + b"\xff" * 15, "-2", "i128 输出字符串"),
    ("f32", struct.pack("<f", 1.5), 1.5, "f32"),
    ("f64", struct.pack("<d", -0.25), -0.25, "f64"),
    ("bool", b"\x00", False, "bool false"),
    ("bool", b"\x01", True, "bool true"),
    ("bool", b"\x02", True, "bool 非 0/1 视为 true"),
    ("string", u32le(5) + b"hello", "hello", "string"),
    ("string", u32le(0), "", "空 string"),
    ("string", u32le(6) + "你好".encode(), "你好", "UTF-8 string"),
    ("publicKey", bytes(32), ZERO_PUBKEY, "publicKey"),
    ("bytes", u32le(3) + b"\x00\xab\xff", "0x00abff", "bytes"),
    ("bytes", u32le(0), "0x", "空 bytes"),
]


@pytest.mark.parametrize(("type_name", "data", "expected", "desc"), PRIMITIVE_CASES)
def test_decode_primitives(
    type_name: str, data: bytes, expected: Any, desc: str
) -> None:
    """基本类型应按小端序解码, 并消耗全部输入."""
    value, offset = decode(data, parse_type(type_name))
    assert value == expected, f"Failed: {desc}"
    assert offset == len(data), f"Failed: {desc}"


def test_decode_publickey_base58() -> None:
    """publicKey 应以 base58 文本输出."""
    raw = bytes(range(32))
    value, offset = decode(raw, parse_type("publicKey"))
    assert value == str(Pubkey.from_bytes(raw))
    assert offset == 32


def test_decode_invalid_utf8_is_lossy() -> None:
    """非法 UTF-8 不应中止解码, 而是尽力输出文本."""
    value, offset = decode(u32le(2) + b"\xff\xfe" + b"\x07", parse_type("string"))
    assert isinstance(value, str)
    assert "�" in value
    assert offset == 6


def test_decode_native_int64_option() -> None:
    """NATIVE_INT64 选项下 64 位整数直接输出 int."""
    config = Config.from_params(option=DecodeOption.NATIVE_INT64)
    value, _ = decode(u64le(7), parse_type("u64"), config=config)
    assert value == 7


def test_decode_raw_bytes_option() -> None:
    """RAW_BYTES 选项下 bytes 字段直接输出 bytes."""
    config = Config.from_params(option=DecodeOption.RAW_BYTES)
    value, _ = decode(u32le(2) + b"\xca\xfe", parse_type("bytes"), config=config)
    assert value == b"\xca\xfe"


# --- 边界 ---


def test_u32_from_three_bytes() -> None:
    """从 3 字节数据解码 u32 应抛出 BufferUnderrun."""
    with pytest.raises(BufferUnderrun):
        decode(b"\x01\x02\x03", parse_type("u32"))


def test_string_length_exceeds_buffer() -> None:
    """字符串长度前缀超出剩余数据应抛出 BufferUnderrun."""
    with pytest.raises(BufferUnderrun):
        decode(u32le(100) + b"abc", parse_type("string"))


def test_empty_vec_consumes_four_bytes() -> None:
    """0 长度 vec 只消耗 4 字节并得到空列表."""
    value, offset = decode(u32le(0) + b"\xff", parse_type({"vec": "u8"}))
    assert value == []
    assert offset == 4


def test_vec_u8_consumes_count_plus_items() -> None:
    """vec<u8> 长度 3 应恰好消耗 4+3=7 字节."""
    value, offset = decode(u32le(3) + b"\x01\x02\x03\x04", parse_type({"vec": "u8"}))
    assert value == [1, 2, 3]
    assert offset == 7


def test_vec_of_variable_length_items() -> None:
    """vec 的长度是元素个数, 消耗字节数为各元素之和."""
    data = u32le(2) + u32le(1) + b"a" + u32le(3) + b"bcd"
    value, offset = decode(data, parse_type({"vec": "string"}))
    assert value == ["a", "bcd"]
    assert offset == len(data)


def test_vec_exceeds_container_limit() -> None:
    """vec 长度超过上限时应在读取元素前报错."""
    config = Config.from_params(max_container_size=10)
    with pytest.raises(DecodeError, match="exceeds max limit"):
        decode(u32le(11), parse_type({"vec": {"array": ["u8", 0]}}), config=config)


def test_vec_count_bounded_by_remaining_bytes() -> None:
    """vec 长度与元素最小宽度之积超过剩余字节时, 在读取元素前报错."""
    data = u32le(1000) + bytes(10)
    with pytest.raises(BufferUnderrun) as exc_info:
        decode(data, parse_type({"vec": "u32"}))

    err = exc_info.value
    assert err.needed == 4000
    assert err.available == 10
    assert err.offset == 4


def test_vec_count_bounded_for_defined_items(schema: Schema) -> None:
    """结构体元素的最小宽度为各字段最小宽度之和."""
    # Entry 至少 8 字节 (u32 + bytes 长度前缀)
    data = u32le(3) + bytes(20)
    with pytest.raises(BufferUnderrun) as exc_info:
        decode(data, parse_type({"vec": {"defined": "Entry"}}), schema)
    assert exc_info.value.needed == 24


def test_vec_of_zero_sized_items_rejects_garbage_count() -> None:
    """零宽元素的 vec 长度不能超过剩余字节数."""
    data = (9_999_999).to_bytes(4, "little")
    with pytest.raises(DecodeError, match="zero-sized"):
        decode(data, parse_type({"vec": {"array": ["u8", 0]}}))

    s = Schema.from_dict(
        {"types": [{"name": "Empty", "type": {"kind": "struct", "fields": []}}]}
    )
    with pytest.raises(DecodeError, match="zero-sized"):
        decode(data, parse_type({"vec": {"defined": "Empty"}}), s)


def test_vec_of_zero_sized_items_within_bounds() -> None:
    """长度不超过剩余字节时, 零宽元素的 vec 正常解码且不消耗额外字节."""
    data = u32le(2) + b"\xaa\xbb"
    value, offset = decode(data, parse_type({"vec": {"array": ["u8", 0]}}))
    assert value == [[], []]
    assert offset == 4


def test_vec_of_unresolved_items() -> None:
    """元素类型无法解析时报告 UnresolvedTypeError."""
    with pytest.raises(UnresolvedTypeError):
        decode(u32le(1) + bytes(8), parse_type({"vec": {"defined": "Ghost"}}))


def test_option() -> None:
    """option: 0 表示 None 且不再消耗字节, 非 0 表示有值."""
    t = parse_type({"option": "u16"})
    assert decode(b"\x00\xff\xff", t) == (None, 1)
    assert decode(b"\x01\x2a\x00", t) == (42, 3)
    assert decode(b"\x07\x2a\x00", t) == (42, 3)


def test_array() -> None:
    """array 没有长度前缀, 恰好解码 N 个元素."""
    t = parse_type({"array": ["u16", 3]})
    value, offset = decode(b"\x01\x00\x02\x00\x03\x00\x09", t)
    assert value == [1, 2, 3]
    assert offset == 6


def test_decode_from_offset() -> None:
    """decode() 应从指定偏移开始, 并返回新的偏移."""
    value, offset = decode(b"\xaa\xbb\x05\x00", parse_type("u16"), offset=2)
    assert value == 5
    assert offset == 4


# --- defined: 结构体与枚举 ---


def test_defined_struct(schema: Schema) -> None:
    """结构体应按声明顺序解码为 dict."""
    data = u32le(9) + u32le(1) + b"\x01"
    value, offset = decode(data, DefinedType("Entry"), schema)
    assert value == {"slot": 9, "memo": "0x01"}
    assert list(value) == ["slot", "memo"]
    assert offset == len(data)


def test_enum_struct_variant(schema: Schema) -> None:
    """结构体变体: [1, 0x2A,0,0,0] -> Active { amount: 42 }."""
    value, offset = decode(b"\x01\x2a\x00\x00\x00", DefinedType("Status"), schema)
    assert value == {"tag": 1, "name": "Active", "value": {"amount": 42}}
    assert offset == 5


def test_enum_unit_variant(schema: Schema) -> None:
    """单元变体只消耗标签字节, 不带 value."""
    value, offset = decode(b"\x00\xff", DefinedType("Status"), schema)
    assert value == {"tag": 0, "name": "Idle"}
    assert offset == 1


def test_enum_tuple_variant(schema: Schema) -> None:
    """元组变体的负载按位置输出为列表."""
    value, offset = decode(b"\x02\x05\xfe\xff", DefinedType("Status"), schema)
    assert value == {"tag": 2, "name": "Paused", "value": [5, -2]}
    assert offset == 4


def test_enum_unknown_variant(schema: Schema) -> None:
    """超出范围的标签应得到 Unknown 值, 只消耗标签字节."""
    value, offset = decode(b"\x09\x01\x02", DefinedType("Status"), schema)
    assert value == {"tag": 9, "name": UNKNOWN_VARIANT}
    assert offset == 1


def test_enum_empty_field_list_variant() -> None:
    """`"fields": []` 的变体解码为空列表负载, 缺省 fields 才是单元变体."""
    s = Schema.from_dict(
        {
            "types": [
                {
                    "name": "E",
                    "type": {
                        "kind": "enum",
                        "variants": [{"name": "A", "fields": []}, {"name": "B"}],
                    },
                }
            ]
        }
    )

    assert decode(b"\x00", DefinedType("E"), s) == (
        {"tag": 0, "name": "A", "value": []},
        1,
    )
    assert decode(b"\x01", DefinedType("E"), s) == ({"tag": 1, "name": "B"}, 1)


def test_unresolved_defined_fails_whole_decode(schema: Schema) -> None:
    """引用不存在的类型应中止整个解码, 而不是返回 null 并错位."""
    s = Schema.from_dict(
        {
            "types": [
                {
                    "name": "Outer",
                    "type": {
                        "kind": "struct",
                        "fields": [
                            {"name": "a", "type": "u8"},
                            {"name": "ghost", "type": {"defined": "Ghost"}},
                            {"name": "b", "type": "u8"},
                        ],
                    },
                }
            ]
        }
    )
    with pytest.raises(UnresolvedTypeError) as exc_info:
        decode(b"\x01\x02\x03", DefinedType("Outer"), s)

    err = exc_info.value
    assert err.type_name == "Ghost"
    assert err.offset == 1
    assert err.loc == ["ghost"]


def test_defined_without_schema() -> None:
    """没有注册表时, defined 引用无法解析."""
    with pytest.raises(UnresolvedTypeError):
        decode(b"\x00", DefinedType("Anything"))


def test_error_location_path(schema: Schema) -> None:
    """错误应携带出错位置的路径."""
    fields = schema.account_fields_of("Vault")
    assert fields is not None
    # 截断在 history[1].memo 的长度前缀中
    data = vault_body()
    cut = 32 + 8 + 5 + 4 + (4 + 4 + 2) + 4 + 2
    reader = DataReader(data[:cut])

    with pytest.raises(BufferUnderrun) as exc_info:
        TypeDecoder(reader, schema).decode_fields(fields)

    assert exc_info.value.loc == ["history", 1, "memo"]
    assert "(at history.1.memo)" in str(exc_info.value)


def test_decode_full_struct(schema: Schema) -> None:
    """完整的 VaultData 应解码为预期的值树并消耗全部字节."""
    data = vault_body()
    value, offset = decode(data, DefinedType("VaultData"), schema)
    assert value == VAULT_DATA
    assert offset == len(data)


def test_decode_is_deterministic(schema: Schema) -> None:
    """同样的输入解码两次应得到相同结果."""
    data = vault_body()
    assert decode(data, DefinedType("VaultData"), schema) == decode(
        data, DefinedType("VaultData"), schema
    )


# --- 递归类型 ---

RECURSIVE_IDL = {
    "types": [
        {
            "name": "Node",
            "type": {
                "kind": "struct",
                "fields": [
                    {"name": "value", "type": "u8"},
                    {"name": "next", "type": {"option": {"defined": "Node"}}},
                ],
            },
        }
    ]
}


def test_recursive_type_terminates() -> None:
    """自引用类型在遇到 None 时自然终止."""
    s = Schema.from_dict(RECURSIVE_IDL)
    value, offset = decode(b"\x05\x01\x07\x00", DefinedType("Node"), s)
    assert value == {"value": 5, "next": {"value": 7, "next": None}}
    assert offset == 4


def test_recursive_type_depth_guard() -> None:
    """嵌套超过 max_depth 时应抛出 DecodeError."""
    s = Schema.from_dict(RECURSIVE_IDL)
    config = Config.from_params(max_depth=3)
    data = b"\x00\x01" * 10 + b"\x00\x00"
    with pytest.raises(DecodeError, match="Maximum nesting depth"):
        decode(data, DefinedType("Node"), s, config=config)


def test_recursion_limit_surfaces_as_decode_error() -> None:
    """max_depth 大于解释器递归上限时, 仍以 DecodeError 报告."""
    s = Schema.from_dict(RECURSIVE_IDL)
    config = Config.from_params(max_depth=100_000)
    data = b"\x00\x01" * sys.getrecursionlimit() + b"\x00\x00"

    with pytest.raises(DecodeError, match="Nesting too deep") as exc_info:
        decode(data, DefinedType("Node"), s, config=config)
    assert isinstance(exc_info.value.__cause__, RecursionError)
