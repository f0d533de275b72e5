"""IDL 模式模块.

使用 Pydantic 校验 IDL 文档的结构, 并将其转换为按名称索引的
账户/类型注册表 (`Schema`). 解析失败统一抛出 `SchemaError`,
且不会产生部分填充的注册表.
"""

import json
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, cast

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from typing_extensions import Self

from .exceptions import SchemaError
from .log import logger
from .types import (
    DefinedType,
    EnumDef,
    Field,
    IdlType,
    StructDef,
    TypeDef,
    Variant,
    VariantPayload,
    parse_type,
    parse_variant_payload,
)

# --- 文档模型 (Pydantic) ---


class _IdlModel(BaseModel):
    # IDL 中的 instructions / events / errors 等与解码无关, 直接忽略
    model_config = ConfigDict(extra="ignore", frozen=True, validate_default=True)


class IdlField(_IdlModel):
    """`{"name": ..., "type": ...}` 字段."""

    name: str
    type: Any

    @field_validator("type")
    @classmethod
    def _parse_type(cls, value: Any) -> IdlType:
        return parse_type(value)


class IdlStructBody(_IdlModel):
    """`{"kind": "struct", "fields": [...]}`."""

    kind: Literal["struct"]
    fields: list[IdlField] = []


class IdlVariant(_IdlModel):
    """枚举变体, `fields` 的多种写法见 `parse_variant_payload`."""

    name: str
    fields: Any = None

    @field_validator("fields")
    @classmethod
    def _parse_payload(cls, value: Any) -> VariantPayload:
        return parse_variant_payload(value)


class IdlEnumBody(_IdlModel):
    """`{"kind": "enum", "variants": [...]}`."""

    kind: Literal["enum"]
    variants: list[IdlVariant] = []


class IdlDefinedRef(_IdlModel):
    """账户类型指向 `types` 中的另一个命名类型."""

    defined: Any

    @field_validator("defined")
    @classmethod
    def _parse_defined(cls, value: Any) -> str:
        return cast(DefinedType, parse_type({"defined": value})).name


class IdlTypeDef(_IdlModel):
    """`types` 数组中的一个命名类型."""

    name: str
    type: IdlStructBody | IdlEnumBody


class IdlAccount(_IdlModel):
    """`accounts` 数组中的一个账户类型."""

    name: str
    type: IdlStructBody | IdlDefinedRef | None = None


class IdlDocument(_IdlModel):
    """IDL 文档的顶层结构."""

    name: str | None = None
    version: str | None = None
    accounts: list[IdlAccount] = []
    types: list[IdlTypeDef] = []


# --- 注册表 ---


@dataclass(frozen=True)
class AccountDef:
    """顶层账户类型.

    Attributes:
        name: 账户类型名, 同时用于计算鉴别器.
        body: 内联结构体, 指向其他类型的引用, 或 None (与同名类型对应).
    """

    name: str
    body: StructDef | DefinedType | None = None


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


class Schema:
    """只读的 IDL 类型注册表.

    构建完成后不再修改, 可以在多个解码调用之间 (包括并发调用) 安全共享.

    Examples:
        >>> schema = Schema.from_dict(
        ...     {
        ...         "accounts": [
        ...             {
        ...                 "name": "Counter",
        ...                 "type": {
        ...                     "kind": "struct",
        ...                     "fields": [{"name": "count", "type": "u64"}],
        ...                 },
        ...             }
        ...         ]
        ...     }
        ... )
        >>> schema.account_names
        ('Counter',)
    """

    __slots__ = ("_accounts", "_types", "name")

    _accounts: dict[str, AccountDef]
    _types: dict[str, TypeDef]
    name: str | None

    def __init__(
        self,
        accounts: Iterable[AccountDef] = (),
        types: Iterable[TypeDef] = (),
        name: str | None = None,
    ) -> None:
        """初始化注册表.

        Args:
            accounts: 账户类型, 按声明顺序.
            types: 辅助类型 (结构体或枚举).
            name: 程序名称 (可选).

        Raises:
            SchemaError: 存在重复的账户名或类型名时.
        """
        account_map: dict[str, AccountDef] = {}
        for account in accounts:
            if account.name in account_map:
                raise SchemaError(f"Duplicate account name: {account.name!r}")
            account_map[account.name] = account

        type_map: dict[str, TypeDef] = {}
        for type_def in types:
            if type_def.name in type_map:
                raise SchemaError(f"Duplicate type name: {type_def.name!r}")
            type_map[type_def.name] = type_def

        self._accounts = account_map
        self._types = type_map
        self.name = name

    @classmethod
    def from_document(cls, doc: IdlDocument) -> Self:
        """从已校验的文档模型构建注册表."""
        types: list[TypeDef] = []
        for item in doc.types:
            body = item.type
            if isinstance(body, IdlStructBody):
                fields = tuple(Field(f.name, f.type) for f in body.fields)
                types.append(StructDef(item.name, fields))
            else:
                types.append(
                    EnumDef(
                        item.name,
                        tuple(Variant(v.name, v.fields) for v in body.variants),
                    )
                )

        accounts: list[AccountDef] = []
        for acc in doc.accounts:
            if isinstance(acc.type, IdlStructBody):
                body_def: StructDef | DefinedType | None = StructDef(
                    acc.name, tuple(Field(f.name, f.type) for f in acc.type.fields)
                )
            elif isinstance(acc.type, IdlDefinedRef):
                body_def = DefinedType(acc.type.defined)
            else:
                body_def = None
            accounts.append(AccountDef(acc.name, body_def))

        schema = cls(accounts, types, name=doc.name)
        logger.debug(
            "[Schema] 载入 %d 个账户类型, %d 个辅助类型",
            len(schema._accounts),
            len(schema._types),
        )
        return schema

    @classmethod
    def from_dict(cls, data: Any) -> Self:
        """从 JSON 对象 (dict) 构建注册表.

        Raises:
            SchemaError: 文档结构不合法时.
        """
        if not isinstance(data, dict):
            raise SchemaError(
                f"IDL document must be a JSON object, got {type(data).__name__}"
            )
        try:
            doc = IdlDocument.model_validate(data)
        except ValidationError as e:
            raise SchemaError(
                f"Invalid IDL document: {_format_validation_error(e)}"
            ) from e
        return cls.from_document(doc)

    @classmethod
    def from_json(cls, text: str | bytes) -> Self:
        """从 JSON 文本构建注册表."""
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SchemaError(f"IDL document is not valid JSON: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str | Path) -> Self:
        """从 JSON 文件构建注册表."""
        return cls.from_json(Path(path).read_bytes())

    @property
    def account_names(self) -> tuple[str, ...]:
        """所有账户类型名 (声明顺序)."""
        return tuple(self._accounts)

    @property
    def accounts(self) -> tuple[AccountDef, ...]:
        """所有账户类型 (声明顺序)."""
        return tuple(self._accounts.values())

    def get_account(self, name: str) -> AccountDef | None:
        """按名称查找账户类型."""
        return self._accounts.get(name)

    def resolve_defined(self, name: str) -> TypeDef | None:
        """按名称查找结构体或枚举定义, 不存在时返回 None."""
        return self._types.get(name)

    def account_fields_of(self, name: str) -> tuple[Field, ...] | None:
        """获取账户类型的字段列表.

        查找顺序:
            1. 账户内联的结构体字段.
            2. 账户类型为 `defined` 引用时, 跟随一次引用到结构体.
            3. 以上都找不到时, 使用 `types` 中与账户同名的结构体.

        Returns:
            字段列表, 找不到或不是结构体时返回 None.
        """
        account = self._accounts.get(name)
        if account is None:
            return None

        body = account.body
        if isinstance(body, StructDef):
            return body.fields

        if body is not None:
            target = self._types.get(body.name)
            if isinstance(target, StructDef):
                return target.fields

        fallback = self._types.get(name)
        if isinstance(fallback, StructDef):
            return fallback.fields
        return None

    def __repr__(self) -> str:
        return (
            f"Schema(name={self.name!r}, accounts={list(self._accounts)!r}, "
            f"types={list(self._types)!r})"
        )
