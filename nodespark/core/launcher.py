"""
启动器管理模块。

在稳定目录中维护 node、npm、npx 启动器，使其指向当前激活版本的可执行文件。
"""

import logging
import os
import re
from pathlib import Path
from typing import List, Optional, Sequence

from nodespark.core.interfaces import IIndirection, ILauncherManager
from nodespark.utils.logger import get_logger

LAUNCHER_NAMES = ("node", "npm", "npx")


class LauncherError(Exception):
    """启动器管理错误异常。"""
    pass


class LauncherTargetMissingError(LauncherError):
    """目标版本目录不存在，未修改任何启动器。"""

    def __init__(self, version_dir: Path):
        self.version_dir = version_dir
        super().__init__(f"版本目录不存在: {version_dir}")


class ActivationIncompleteError(LauncherError):
    """部分启动器切换失败。"""

    def __init__(self, succeeded: Sequence[str], failed: dict):
        self.succeeded = list(succeeded)
        self.failed = dict(failed)
        details = "; ".join(f"{name}: {reason}" for name, reason in self.failed.items())
        super().__init__(
            f"启动器切换未完成。已切换: {', '.join(self.succeeded) or '无'}；失败: {details}"
        )


class SymlinkIndirection(IIndirection):
    """使用符号链接实现的启动器（类 Unix 系统）。"""

    def launcher_path(self, bin_dir: Path, name: str) -> Path:
        return bin_dir / name

    def target_path(self, version_dir: Path, name: str) -> Path:
        return version_dir / "bin" / name

    def create(self, target: Path, link: Path) -> None:
        os.symlink(target, link)

    def read(self, link: Path) -> Optional[Path]:
        if not link.is_symlink():
            return None
        return Path(os.readlink(link))


class ScriptIndirection(IIndirection):
    """
    使用转发脚本实现的启动器（Windows）。

    每个启动器是一个 .cmd 文件，原样转发所有参数给目标可执行文件。
    npm 和 npx 缺少 .cmd 时依次尝试 .bat 和无扩展名的文件。
    """

    TARGETS = {
        "node": ("node.exe",),
        "npm": ("npm.cmd", "npm.bat", "npm"),
        "npx": ("npx.cmd", "npx.bat", "npx"),
    }
    TEMPLATE = '@echo off\r\n"{target}" %*\r\n'
    TARGET_PATTERN = re.compile(r'^"(?P<target>[^"]+)" %\*', re.MULTILINE)

    def launcher_path(self, bin_dir: Path, name: str) -> Path:
        return bin_dir / f"{name}.cmd"

    def target_path(self, version_dir: Path, name: str) -> Path:
        candidates = self.TARGETS.get(name, (f"{name}.cmd",))
        for candidate in candidates:
            path = version_dir / candidate
            if path.exists():
                return path
        return version_dir / candidates[0]

    def create(self, target: Path, link: Path) -> None:
        with open(link, "x", encoding="utf-8", newline="") as f:
            f.write(self.TEMPLATE.format(target=target))

    def read(self, link: Path) -> Optional[Path]:
        try:
            content = link.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        match = self.TARGET_PATTERN.search(content)
        return Path(match.group("target")) if match else None


def default_indirection() -> IIndirection:
    """根据当前平台选择启动器实现。"""
    if os.name == "nt":
        return ScriptIndirection()
    return SymlinkIndirection()


class LauncherManager(ILauncherManager):
    """
    启动器管理器类。

    每次激活都会整体替换所有启动器；单个启动器失败时不回滚已切换的启动器。
    实现 ILauncherManager 抽象接口。
    """

    def __init__(
        self,
        bin_dir: Path,
        indirection: Optional[IIndirection] = None,
        names: Sequence[str] = LAUNCHER_NAMES,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化启动器管理器。

        参数:
            bin_dir: 启动器所在的稳定目录
            indirection: 启动器实现，默认按平台选择
            names: 启动器名称列表
            logger: 日志记录器
        """
        self.bin_dir = Path(bin_dir)
        self.indirection = indirection or default_indirection()
        self.names = tuple(names)
        self.logger = logger or get_logger()

    def launcher_path(self, name: str) -> Path:
        """获取指定启动器的路径。"""
        return self.indirection.launcher_path(self.bin_dir, name)

    def _remove(self, link: Path) -> None:
        """删除已有启动器，不存在时视为成功。"""
        try:
            os.unlink(link)
        except FileNotFoundError:
            pass

    def activate(self, version_dir: Path) -> List[str]:
        """
        将所有启动器切换到指定版本目录。

        参数:
            version_dir: 已安装版本的目录

        返回:
            已切换的启动器名称列表

        抛出:
            LauncherTargetMissingError: 版本目录不存在，未修改任何启动器
            ActivationIncompleteError: 部分启动器切换失败
        """
        version_dir = Path(version_dir).resolve()
        if not version_dir.is_dir():
            self.logger.error(f"版本目录不存在，跳过启动器切换: {version_dir}")
            raise LauncherTargetMissingError(version_dir)

        try:
            self.bin_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ActivationIncompleteError([], {name: str(e) for name in self.names}) from e

        succeeded = []
        failed = {}
        for name in self.names:
            target = self.indirection.target_path(version_dir, name)
            link = self.launcher_path(name)
            if not os.path.lexists(target):
                failed[name] = f"目标不存在: {target}"
                self.logger.warning(f"{name} 的目标不存在: {target}")
                continue
            try:
                self._remove(link)
                self.indirection.create(target, link)
            except OSError as e:
                failed[name] = str(e)
                self.logger.error(f"创建启动器 {link} 失败: {e}")
                continue
            self.logger.debug(f"启动器 {link} -> {target}")
            succeeded.append(name)

        if failed:
            raise ActivationIncompleteError(succeeded, failed)

        self.logger.info(f"启动器已指向 {version_dir}")
        return succeeded

    def read_target(self, name: str) -> Optional[Path]:
        """
        读取指定启动器当前指向的目标。

        参数:
            name: 启动器名称

        返回:
            目标路径，启动器不存在时返回 None
        """
        return self.indirection.read(self.launcher_path(name))
