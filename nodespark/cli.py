"""
NodeSpark 命令行接口模块。
"""

import argparse
import json
import os
import sys

from nodespark import __version__
from nodespark.core import NODESPARK_ERRORS
from nodespark.core.settings import Settings, load_settings
from nodespark.core.version_manager import VersionManager
from nodespark.utils.logger import get_logger, setup_logger

logger = get_logger()


def create_parser() -> argparse.ArgumentParser:
    """
    创建并配置命令行参数解析器。

    返回:
        配置好的 ArgumentParser 实例
    """
    parser = argparse.ArgumentParser(
        prog="nsk",
        description="NodeSpark - Node.js 版本管理器",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  nsk install 18.17.0     安装 Node.js 18.17.0
  nsk install latest      安装最新版本
  nsk use 20.5.0          切换到 Node.js 20.5.0
  nsk remove 16.20.0      删除 Node.js 16.20.0
  nsk list                列出已安装版本
  nsk list --remote       列出远程可用版本
        """,
    )

    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="启用详细输出",
    )

    parser.add_argument(
        "--home",
        type=str,
        default=None,
        help="数据根目录（默认使用 NODESPARK_HOME 或系统用户目录）",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="命令",
        description="可用的 CLI 命令",
    )

    install_parser = subparsers.add_parser(
        "install",
        help="下载并安装指定版本",
    )
    install_parser.add_argument(
        "version",
        help="要安装的版本 (例如 18.17.0、v20.5.0、latest、lts)",
    )

    use_parser = subparsers.add_parser(
        "use",
        help="切换到指定版本",
    )
    use_parser.add_argument(
        "version",
        help="要切换到的版本",
    )

    remove_parser = subparsers.add_parser(
        "remove",
        aliases=["uninstall"],
        help="删除指定版本",
    )
    remove_parser.add_argument(
        "version",
        help="要删除的版本",
    )

    list_parser = subparsers.add_parser(
        "list",
        help="列出已安装版本",
    )
    list_parser.add_argument(
        "--remote",
        "-r",
        action="store_true",
        help="显示远程可用版本",
    )
    list_parser.add_argument(
        "--format",
        "-f",
        choices=["json", "simple"],
        default="simple",
        help="输出格式",
    )

    subparsers.add_parser(
        "current",
        help="显示当前使用的版本",
    )

    subparsers.add_parser(
        "global-list",
        help="列出当前版本全局安装的 npm 包",
    )

    return parser


def _get_manager(settings: Settings) -> VersionManager:
    """
    获取版本管理器实例。

    参数:
        settings: 运行时设置

    返回:
        VersionManager 实例
    """
    return VersionManager(settings, logger=logger)


def _path_hint(manager: VersionManager) -> None:
    """启动器目录不在 PATH 中时提示用户。"""
    bin_dir = str(manager.settings.dirs.bin_dir)
    entries = [os.path.normcase(p) for p in os.environ.get("PATH", "").split(os.pathsep)]
    if os.path.normcase(bin_dir) not in entries:
        print(f"注意：请将 {bin_dir} 添加到 PATH 环境变量中。")


def run_cli(args: argparse.Namespace) -> int:
    """
    运行命令行接口。

    参数:
        args: 解析后的命令行参数

    返回:
        退出码（0 表示成功）
    """
    if args.command is None:
        print("未指定命令。使用 --help 查看帮助信息。")
        return 1

    try:
        settings = load_settings(home=args.home, verbose=args.verbose)
    except ValueError as e:
        print(f"错误: {e}", file=sys.stderr)
        return 1

    try:
        setup_logger(verbose=settings.verbose, log_dir=settings.dirs.log_dir)
    except OSError as e:
        print(f"错误: 无法创建日志目录 {settings.dirs.log_dir}: {e}", file=sys.stderr)
        return 1

    command_handlers = {
        "install": handle_install,
        "use": handle_use,
        "remove": handle_remove,
        "uninstall": handle_remove,
        "list": handle_list,
        "current": handle_current,
        "global-list": handle_global_list,
    }

    handler = command_handlers.get(args.command)
    if handler is None:
        print(f"未知命令: {args.command}")
        return 1

    try:
        manager = _get_manager(settings)
        return handler(manager, args)
    except NODESPARK_ERRORS as e:
        logger.debug(f"命令 {args.command} 失败", exc_info=True)
        print(f"错误: {e}", file=sys.stderr)
        return 1


def handle_install(manager: VersionManager, args: argparse.Namespace) -> int:
    """
    处理 install 命令：下载并安装指定版本。

    参数:
        manager: 版本管理器
        args: 解析后的命令行参数

    返回:
        退出码
    """
    print(f"正在安装 Node.js {args.version}...")

    def progress(downloaded: int, total: int):
        if total <= 0:
            print(f"\r已下载 {downloaded} 字节", end="", flush=True)
            return
        percent = min(int(downloaded / total * 100), 100)
        bar_len = 40
        filled = int(bar_len * percent / 100)
        bar = "=" * filled + "-" * (bar_len - filled)
        print(f"\r[{bar}] {percent}% ({downloaded}/{total} 字节)", end="", flush=True)

    result = manager.install(args.version, progress)
    version = result["version"]

    if result["already_installed"]:
        print(f"Node.js {version} 已安装")
        return 0

    print(f"\n成功安装 Node.js {version}")
    if result["activated"]:
        print(f"已将 Node.js {version} 设为默认版本")
        _path_hint(manager)
    return 0


def handle_use(manager: VersionManager, args: argparse.Namespace) -> int:
    """
    处理 use 命令：切换到指定版本。

    参数:
        manager: 版本管理器
        args: 解析后的命令行参数

    返回:
        退出码
    """
    version = manager.use(args.version)
    print(f"正在使用 Node.js {version}")
    _path_hint(manager)
    return 0


def handle_remove(manager: VersionManager, args: argparse.Namespace) -> int:
    """
    处理 remove 命令：删除指定版本。

    参数:
        manager: 版本管理器
        args: 解析后的命令行参数

    返回:
        退出码
    """
    version = manager.remove(args.version)
    print(f"成功删除 Node.js {version}")
    return 0


def handle_list(manager: VersionManager, args: argparse.Namespace) -> int:
    """
    处理 list 命令：列出已安装或远程可用的版本。

    参数:
        manager: 版本管理器
        args: 解析后的命令行参数

    返回:
        退出码
    """
    if args.remote:
        print("正在获取远程可用版本...")
        result = manager.list_remote()
        versions = result["versions"]

        if args.format == "json":
            print(json.dumps(result, indent=2, ensure_ascii=False))
            return 0

        if not versions:
            print("未找到远程可用版本")
            return 0

        print("\n可用的 Node.js 版本:")
        for v in versions:
            lts = f" [LTS: {v['lts']}]" if isinstance(v["lts"], str) else (" [LTS]" if v["lts"] else "")
            if v["current"]:
                print(f"* {v['version']}{lts} (已安装, 当前)")
            elif v["installed"]:
                print(f"* {v['version']}{lts} (已安装)")
            else:
                print(f"  {v['version']}{lts}")
        if result["has_more"]:
            print(f"  ... 还有 {result['total'] - len(versions)} 个版本")
        return 0

    versions = manager.list_local()

    if args.format == "json":
        current = next((v["version"] for v in versions if v["current"]), None)
        print(json.dumps({"current": current, "versions": versions}, indent=2, ensure_ascii=False))
        return 0

    print("已安装的 Node.js 版本:")
    if not versions:
        print("  未安装任何版本")
        return 0

    for v in versions:
        if v["current"]:
            print(f"* {v['version']} (当前)")
        else:
            print(f"  {v['version']}")
        if args.verbose:
            print(f"     路径: {v['path']}")
    return 0


def handle_current(manager: VersionManager, args: argparse.Namespace) -> int:
    """
    处理 current 命令：显示当前使用的版本。

    参数:
        manager: 版本管理器
        args: 解析后的命令行参数

    返回:
        退出码
    """
    current = manager.get_current_version()
    if current is None:
        print("当前版本: 未设置")
        return 0

    print(f"当前版本: {current}")
    if args.verbose:
        target = manager.launcher_manager.read_target("node")
        print(f"node 启动器: {target or '不存在'}")
    return 0


def handle_global_list(manager: VersionManager, args: argparse.Namespace) -> int:
    """
    处理 global-list 命令：列出全局安装的 npm 包。

    参数:
        manager: 版本管理器
        args: 解析后的命令行参数

    返回:
        退出码
    """
    print("正在列出全局安装的 npm 包...")
    packages = manager.list_global_packages()
    if not packages:
        print("  未安装任何全局包")
        return 0
    for package in packages:
        print(f"  {package['name']} @{package['version']}")
    return 0
