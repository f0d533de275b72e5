"""anchorlens 命令行工具."""

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from . import loads
from .discriminator import discriminator_of
from .exceptions import DecodeError, SchemaError
from .keys import find_program_address, keypair_from_secret, parse_secret_key_input
from .raw import RawView
from .schema import Schema

if TYPE_CHECKING:
    import click as click_module
    from rich.console import Console
    from rich.syntax import Syntax
    from rich.text import Text
    from rich.tree import Tree
else:
    try:
        import click as click_module
        from rich.console import Console
        from rich.syntax import Syntax
        from rich.text import Text
        from rich.tree import Tree
    except ImportError:
        click_module = None
        Console = None
        Syntax = None
        Text = None
        Tree = None

click = click_module

# 流式读取配置
FILE_SIZE_THRESHOLD = 10 * 1024 * 1024  # 10MB
CHUNK_SIZE = 8 * 1024 * 1024  # 8MB


if not click:

    def main() -> None:
        """入口函数 (缺少 click)."""
        print("错误: 未检测到 'click' 模块,无法运行 CLI 工具。", file=sys.stderr)
        print(
            "\n该功能属于可选组件,请通过以下命令安装依赖:\n"
            "  pip install 'anchorlens[cli]'",
            file=sys.stderr,
        )
        sys.exit(1)

else:

    def _read_binary_file(file_path: Path, verbose: bool) -> bytes:
        """读取二进制文件,大文件使用分块以控制内存."""
        file_size = file_path.stat().st_size

        if file_size > FILE_SIZE_THRESHOLD:
            if verbose:
                click.echo(f"[DEBUG] 文件大小 {file_size} 字节,使用分块读取", err=True)

            chunks = []
            with open(file_path, "rb") as f:
                while chunk := f.read(CHUNK_SIZE):
                    chunks.append(chunk)
            return b"".join(chunks)
        return file_path.read_bytes()

    def _parse_hex(text: str) -> bytes:
        """解析十六进制文本, 允许 `0x` 前缀和空白分隔."""
        cleaned = "".join(text.split())
        if cleaned[:2].lower() == "0x":
            cleaned = cleaned[2:]
        if not all(c in "0123456789abcdefABCDEF" for c in cleaned):
            raise ValueError("不是有效的十六进制字符串")
        return bytes.fromhex(cleaned)

    def _read_hex_file(file_path: Path) -> bytes:
        """读取并解析十六进制文本文件.

        Raises:
            ValueError: 如果文件内容不是有效的十六进制字符串.
        """
        return _parse_hex(file_path.read_text(encoding="utf-8"))

    def _read_input(encoded: str | None, file_path: Path | None, verbose: bool) -> bytes:
        """从参数或文件读取账户数据."""
        if encoded and file_path:
            raise click.UsageError("不能同时指定 ENCODED 数据和 --file 参数")
        if not encoded and not file_path:
            raise click.UsageError("必须指定 ENCODED 数据或 --file 参数")

        if file_path:
            try:
                data = _read_hex_file(file_path)
                if verbose:
                    click.echo("[DEBUG] 从文件读取十六进制数据 (文本模式)", err=True)
            except (UnicodeDecodeError, ValueError):
                # 降级到二进制模式
                data = _read_binary_file(file_path, verbose)
                if verbose:
                    click.echo("[DEBUG] 从文件读取二进制数据 (二进制模式)", err=True)
            return data

        assert encoded is not None
        try:
            return _parse_hex(encoded)
        except ValueError as e:
            raise click.BadParameter(f"无效的十六进制格式 - {e}") from e

    def _json_default(obj: object) -> object:
        if isinstance(obj, bytes | bytearray | memoryview):
            return "0x" + bytes(obj).hex()
        return str(obj)

    def _echo_raw(data: bytes, err: bool = False) -> None:
        """输出原始数据的三种形式."""
        view = RawView.from_bytes(data)
        click.echo(f"Base64: {view.base64}", err=err)
        click.echo(f"Hex:    {view.hex}", err=err)
        click.echo(f"Bytes:  {view.bytes}", err=err)

    def _build_rich_tree(value: Any, tree: "Tree", label: str) -> None:
        """递归构建 Rich 树.

        Args:
            value: 当前解码值.
            tree: 父级 Tree 对象.
            label: 当前节点的名称 (字段名或索引).
        """
        style_key = "bold blue"
        style_type = "cyan"
        style_value_str = "green"
        style_value_num = "magenta"

        text = Text()
        text.append(label, style=style_key)

        if isinstance(value, dict) and "tag" in value and "name" in value:
            # 枚举值
            text.append(f" {value['name']}", style="bold yellow")
            text.append(f" (tag {value['tag']})", style="dim")
            branch = tree.add(text)
            if "value" in value:
                _build_rich_tree(value["value"], branch, "value")
        elif isinstance(value, dict):
            text.append(" Struct", style="bold yellow")
            branch = tree.add(text)
            for key, child in value.items():
                _build_rich_tree(child, branch, str(key))
        elif isinstance(value, list):
            text.append(f" List ({len(value)})", style=style_type)
            branch = tree.add(text)
            for i, child in enumerate(value):
                _build_rich_tree(child, branch, f"[{i}]")
        else:
            text.append(": ", style=style_type)
            if value is None:
                text.append("None", style="dim")
            elif isinstance(value, str):
                text.append(value, style=style_value_str)
            else:
                text.append(str(value), style=style_value_num)
            tree.add(text)

    def _print_tree(result: dict[str, Any], file: Any = None) -> None:
        """打印解码结果树 (使用 Rich)."""
        console = Console(file=file, force_terminal=file is None)
        root = Tree(Text(result["accountName"], style="bold white"))
        for key, child in result["data"].items():
            _build_rich_tree(child, root, key)
        console.print(root)

    def _print_result(
        result: dict[str, Any], output_format: str, output_file: str | None
    ) -> None:
        """按格式输出解码结果."""
        if output_format == "tree":
            if output_file:
                with open(output_file, "w", encoding="utf-8") as f:
                    _print_tree(result, file=f)
                click.echo(f"结果已保存到: {output_file}", err=True)
            else:
                _print_tree(result)
            return

        output_text: str | None = None
        if output_format == "json":
            output_text = json.dumps(
                result, indent=2, ensure_ascii=False, default=_json_default
            )
        elif output_file or not Console:
            import pprint

            output_text = pprint.pformat(result, width=100, sort_dicts=False)

        if output_file:
            assert output_text is not None
            Path(output_file).write_text(output_text, encoding="utf-8")
            click.echo(f"结果已保存到: {output_file}", err=True)
        elif output_format == "json":
            assert output_text is not None
            Console().print(
                Syntax(output_text, "json", theme="monokai", word_wrap=True)
            )
        else:
            Console().print(result)

    @click.group(help="Anchor 账户数据解码命令行工具")
    @click.version_option(package_name="anchorlens")
    def cli() -> None:
        """Anchor 账户数据解码命令行工具."""

    @cli.command(help="按 IDL 解码账户数据")
    @click.argument("encoded", required=False)
    @click.option(
        "-f",
        "--file",
        "file_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="从文件读取账户数据 (十六进制文本或二进制)",
    )
    @click.option(
        "--idl",
        "idl_path",
        required=True,
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Anchor IDL JSON 文件",
    )
    @click.option(
        "-a",
        "--account",
        "account_name",
        help="显式指定账户类型 (默认按鉴别器自动识别)",
    )
    @click.option(
        "--format",
        "output_format",
        type=click.Choice(["pretty", "json", "tree"]),
        default="pretty",
        show_default=True,
        help="输出格式",
    )
    @click.option(
        "-o",
        "--output",
        "output_file",
        type=click.Path(dir_okay=False, writable=True),
        help="将输出保存到文件 (如不指定则输出到控制台)",
    )
    @click.option("--raw", "show_raw", is_flag=True, help="同时输出原始数据")
    @click.option("-v", "--verbose", is_flag=True, help="显示详细的解码过程信息")
    def decode(
        encoded: str | None,
        file_path: Path | None,
        idl_path: Path,
        account_name: str | None,
        output_format: str,
        output_file: str | None,
        show_raw: bool,
        verbose: bool,
    ) -> None:
        """按 IDL 解码账户数据.

        Examples:
          # 自动识别账户类型
          anchorlens decode --idl idl.json "<hex>"

          # 显式指定账户类型, 以 JSON 输出
          anchorlens decode --idl idl.json -a Counter -f data.bin --format json
        """
        data = _read_input(encoded, file_path, verbose)

        try:
            schema = Schema.from_file(idl_path)
        except SchemaError as e:
            raise click.ClickException(f"IDL 解析失败: {e}") from e

        if verbose:
            click.echo(f"[DEBUG] 数据大小: {len(data)} 字节", err=True)
            click.echo(f"[DEBUG] 账户类型: {', '.join(schema.account_names)}", err=True)

        if show_raw:
            _echo_raw(data)

        try:
            decoded = loads(data, schema, account_name)
        except DecodeError as e:
            if verbose:
                import traceback

                traceback.print_exc(file=sys.stderr)
            if not show_raw:
                _echo_raw(data, err=True)
            raise click.ClickException(f"解码失败: {e}") from e

        if decoded is None:
            if not show_raw:
                _echo_raw(data, err=True)
            if account_name:
                raise click.ClickException(f"IDL 中没有账户类型 {account_name!r}")
            raise click.ClickException("IDL 账户类型不匹配")

        if verbose and not decoded.discriminator_matched:
            click.echo("[DEBUG] 鉴别器不匹配, 从偏移 0 开始解码", err=True)

        _print_result(decoded.to_dict(), output_format, output_file)

    @cli.command(help="输出账户数据的 Base64 / Hex / 字节列表")
    @click.argument("encoded", required=False)
    @click.option(
        "-f",
        "--file",
        "file_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="从文件读取账户数据 (十六进制文本或二进制)",
    )
    def raw(encoded: str | None, file_path: Path | None) -> None:
        """输出原始数据."""
        _echo_raw(_read_input(encoded, file_path, verbose=False))

    @cli.command(help="计算账户类型的鉴别器")
    @click.argument("names", nargs=-1, required=True)
    def discriminator(names: tuple[str, ...]) -> None:
        """计算鉴别器."""
        for name in names:
            click.echo(f"{name}: {discriminator_of(name).hex()}")

    @cli.command(help="推导程序派生地址 (PDA)")
    @click.argument("program_id")
    @click.argument("seeds", nargs=-1)
    def pda(program_id: str, seeds: tuple[str, ...]) -> None:
        """推导 PDA."""
        try:
            result = find_program_address(program_id, seeds)
        except ValueError as e:
            raise click.ClickException(str(e)) from e
        click.echo(f"PDA:  {result.address}")
        click.echo(f"Bump: {result.bump}")

    @cli.command(help="数组形式私钥转换为 base58 私钥与地址")
    @click.argument("secret")
    def keypair(secret: str) -> None:
        """转换私钥."""
        try:
            info = keypair_from_secret(parse_secret_key_input(secret))
        except ValueError as e:
            raise click.ClickException(str(e)) from e
        click.echo(f"Secret (base58): {info.secret_base58}")
        click.echo(f"Address:         {info.address}")

    def main() -> None:
        """入口函数."""
        cli()


if __name__ == "__main__":
    main()
