"""提供 anchorlens 测试的公共 Fixtures."""

import struct
from typing import Any

import pytest

from anchorlens import Schema

# ==========================================
# 测试用 IDL 文档
# ==========================================

SAMPLE_IDL: dict[str, Any] = {
    "version": "0.1.0",
    "name": "sample",
    "instructions": [],
    "accounts": [
        {
            "name": "Counter",
            "type": {
                "kind": "struct",
                "fields": [{"name": "count", "type": "u64"}],
            },
        },
        {"name": "Vault", "type": {"defined": "VaultData"}},
        {"name": "Registry"},
    ],
    "types": [
        {
            "name": "VaultData",
            "type": {
                "kind": "struct",
                "fields": [
                    {"name": "owner", "type": "publicKey"},
                    {"name": "balance", "type": "u64"},
                    {"name": "status", "type": {"defined": "Status"}},
                    {"name": "history", "type": {"vec": {"defined": "Entry"}}},
                    {"name": "label", "type": {"option": "string"}},
                    {"name": "flags", "type": {"array": ["bool", 3]}},
                ],
            },
        },
        {
            "name": "Status",
            "type": {
                "kind": "enum",
                "variants": [
                    {"name": "Idle"},
                    {
                        "name": "Active",
                        "fields": [{"name": "amount", "type": "u32"}],
                    },
                    {"name": "Paused", "fields": ["u8", "i16"]},
                ],
            },
        },
        {
            "name": "Entry",
            "type": {
                "kind": "struct",
                "fields": [
                    {"name": "slot", "type": "u32"},
                    {"name": "memo", "type": "bytes"},
                ],
            },
        },
        {
            "name": "Registry",
            "type": {
                "kind": "struct",
                "fields": [{"name": "items", "type": {"vec": "u16"}}],
            },
        },
    ],
}

ZERO_PUBKEY = "11111111111111111111111111111111"


def u32le(value: int) -> bytes:
    """4 字节小端无符号整数."""
    return struct.pack("<I", value)


def u16le(value: int) -> bytes:
    """2 字节小端无符号整数."""
    return struct.pack("<H", value)


def u64le(value: int) -> bytes:
    """8 字节小端无符号整数."""
    return struct.pack("<Q", value)


def vault_body() -> bytes:
    """构造一个 VaultData 的完整数据 (不含鉴别器)."""
    return (
        bytes(32)  # owner
        + u64le(1_000)  # balance
        + b"\x01" + u32le(42)  # status = Active { amount: 42 }
        + u32le(2)  # history 长度
        + u32le(7) + u32le(2) + b"\xca\xfe"  # Entry { slot: 7, memo: 0xcafe }
        + u32le(8) + u32le(0)  # Entry { slot: 8, memo: 0x }
        + b"\x01" + u32le(2) + b"hi"  # label = Some("hi")
        + b"\x01\x00\x05"  # flags
    )


VAULT_DATA = {
    "owner": ZERO_PUBKEY,
    "balance": "1000",
    "status": {"tag": 1, "name": "Active", "value": {"amount": 42}},
    "history": [
        {"slot": 7, "memo": "0xcafe"},
        {"slot": 8, "memo": "0x"},
    ],
    "label": "hi",
    "flags": [True, False, True],
}


# ==========================================
# Fixtures
# ==========================================


@pytest.fixture
def idl() -> dict[str, Any]:
    """提供示例 IDL 文档 (dict).

    Returns:
        dict: 含 Counter / Vault / Registry 三个账户类型的 IDL。
    """
    return SAMPLE_IDL


@pytest.fixture
def schema() -> Schema:
    """提供由示例 IDL 构建的注册表."""
    return Schema.from_dict(SAMPLE_IDL)
