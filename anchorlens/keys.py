"""密钥与地址工具.

- 程序派生地址 (PDA) 的推导.
- 数组形式私钥到 base58 私钥与地址的转换.

具体的密码学运算委托给 `solders`.
"""

import json
import re
from collections.abc import Iterable
from dataclasses import dataclass

from solders.keypair import Keypair
from solders.pubkey import Pubkey

# 单个种子的最大长度
MAX_SEED_LENGTH = 32

_SEPARATORS = re.compile(r"[,\s]+")


@dataclass(frozen=True)
class ProgramAddress:
    """程序派生地址及其 bump."""

    address: str
    bump: int


@dataclass(frozen=True)
class KeypairInfo:
    """由私钥导出的信息."""

    secret_base58: str
    address: str


def parse_pubkey(text: str) -> Pubkey:
    """解析 base58 公钥.

    Raises:
        ValueError: 文本不是合法的 base58 公钥时.
    """
    try:
        return Pubkey.from_string(text.strip())
    except ValueError as e:
        raise ValueError(f"Invalid public key {text!r}: {e}") from e


def find_program_address(
    program_id: str, seeds: Iterable[str | bytes]
) -> ProgramAddress:
    """推导程序派生地址.

    Args:
        program_id: base58 形式的程序 ID.
        seeds: 种子, 字符串按 UTF-8 编码. 空种子会被忽略.

    Returns:
        ProgramAddress: 地址 (base58) 和 bump.

    Raises:
        ValueError: 程序 ID 非法或种子过长时.
    """
    pid = parse_pubkey(program_id)
    raw_seeds: list[bytes] = []
    for seed in seeds:
        raw = seed.encode("utf-8") if isinstance(seed, str) else bytes(seed)
        if not raw:
            continue
        if len(raw) > MAX_SEED_LENGTH:
            raise ValueError(
                f"Seed {raw!r} is {len(raw)} bytes, max is {MAX_SEED_LENGTH}"
            )
        raw_seeds.append(raw)

    address, bump = Pubkey.find_program_address(raw_seeds, pid)
    return ProgramAddress(str(address), bump)


def parse_secret_key_input(text: str) -> bytes:
    """解析数组形式的私钥输入.

    支持 JSON 数组 `[12,34,...]` 以及逗号/空白分隔的数字 `12, 34 ...`.

    Raises:
        ValueError: 含有非数字或超出 0-255 的值时.
    """
    trimmed = text.strip()
    try:
        parsed = json.loads(trimmed)
    except json.JSONDecodeError:
        parsed = None

    if isinstance(parsed, list):
        values = parsed
    else:
        parts = [p for p in _SEPARATORS.split(trimmed.strip("[]")) if p]
        try:
            values = [int(p) for p in parts]
        except ValueError as e:
            raise ValueError(f"Invalid secret key input: {e}") from e

    if not all(
        isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= 255
        for v in values
    ):
        raise ValueError("Secret key values must be integers in range 0-255")
    return bytes(values)


def keypair_from_secret(secret: bytes) -> KeypairInfo:
    """由 64 字节私钥或 32 字节种子得到 base58 私钥和地址.

    Raises:
        ValueError: 长度不是 32 或 64 字节时.
    """
    if len(secret) == 64:
        keypair = Keypair.from_bytes(secret)
    elif len(secret) == 32:
        keypair = Keypair.from_seed(secret)
    else:
        raise ValueError(
            f"Expected an array private key of 32 or 64 bytes, got {len(secret)}"
        )
    return KeypairInfo(secret_base58=str(keypair), address=str(keypair.pubkey()))
