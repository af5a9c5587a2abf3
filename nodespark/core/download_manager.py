"""
下载管理模块。

提供 Node.js 安装包的下载、解压和安装功能。
"""

import logging
import os
import platform
import shutil
import stat
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import requests

from nodespark.core.interfaces import IDownloadManager
from nodespark.utils.input_validator import InputValidator, InputValidationError
from nodespark.utils.logger import get_logger

CHUNK_SIZE = 8192

ARCH_MAP = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "aarch64": "arm64",
    "arm64": "arm64",
}

OS_MAP = {
    "windows": "win",
    "darwin": "darwin",
    "linux": "linux",
}


class DownloadManagerError(Exception):
    """下载管理错误异常。"""
    pass


class FetchFailedError(DownloadManagerError):
    """安装包下载失败。"""

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"下载 {url} 失败: {reason}")


class ExtractFailedError(DownloadManagerError):
    """安装包解压失败。"""

    def __init__(self, archive: Path, reason: str):
        self.archive = archive
        super().__init__(f"解压 {archive} 失败: {reason}")


def detect_platform(
    system: Optional[str] = None,
    machine: Optional[str] = None,
) -> Tuple[str, str, str]:
    """
    检测当前系统对应的发行包平台标识。

    未知架构按 x64 处理，未知系统按 linux 处理。

    参数:
        system: 系统名称，默认为 platform.system()
        machine: 机器架构，默认为 platform.machine()

    返回:
        (系统标识, 架构标识, 压缩包扩展名) 元组
    """
    system = (system or platform.system()).lower()
    machine = (machine or platform.machine()).lower()

    os_name = OS_MAP.get(system, "linux")
    arch = ARCH_MAP.get(machine, "x64")
    ext = "zip" if os_name == "win" else "tar.gz"
    return os_name, arch, ext


def _strip_prefix(names: List[str]) -> Optional[str]:
    """
    计算压缩包内唯一的顶层目录。

    参数:
        names: 成员路径列表

    返回:
        顶层目录名称，成员不共享同一个顶层目录时返回 None
    """
    tops = set()
    nested = False
    for name in names:
        parts = [p for p in name.replace("\\", "/").split("/") if p and p != "."]
        if not parts:
            continue
        tops.add(parts[0])
        if len(parts) > 1:
            nested = True
    if len(tops) == 1 and nested:
        return tops.pop()
    return None


def _relative_member(name: str, prefix: Optional[str]) -> Optional[str]:
    """去掉顶层目录后的成员相对路径，顶层目录本身返回 None。"""
    parts = [p for p in name.replace("\\", "/").split("/") if p and p != "."]
    if prefix is not None and parts and parts[0] == prefix:
        parts = parts[1:]
    if not parts:
        return None
    return "/".join(parts)


class DownloadManager(IDownloadManager):
    """
    下载管理器类。

    负责安装包的下载和解压。下载先写入 .part 文件，完成后再重命名；
    解压先写入临时目录，完成后再整体移动到版本目录，
    因此失败时不会留下半成品。
    """

    def __init__(
        self,
        mirror_url: str,
        temp_dir: Path,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化下载管理器。

        参数:
            mirror_url: 发行源根地址
            temp_dir: 下载和解压使用的临时目录
            timeout: 请求超时时间（秒）
            session: 可选的 requests 会话
            logger: 日志记录器
        """
        self.mirror_url = mirror_url.rstrip("/")
        self.temp_dir = Path(temp_dir)
        self.timeout = timeout
        self.session = session
        self.logger = logger or get_logger()
        self.os_name, self.arch, self.ext = detect_platform()

    def build_download_url(self, version: str) -> str:
        """
        构建指定版本的下载地址。

        参数:
            version: 版本号

        返回:
            下载 URL
        """
        return (
            f"{self.mirror_url}/v{version}/"
            f"node-v{version}-{self.os_name}-{self.arch}.{self.ext}"
        )

    def fetch(
        self,
        url: str,
        dest: Path,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Path:
        """
        下载文件。

        参数:
            url: 下载 URL
            dest: 目标文件路径
            progress_callback: 下载进度回调函数 (已下载字节, 总字节)

        返回:
            目标文件路径

        抛出:
            FetchFailedError: 下载失败，此时不会留下任何文件
        """
        dest = Path(dest)
        part_path = dest.with_name(dest.name + ".part")
        self.logger.info(f"正在从 {url} 下载")

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            if self.session is not None:
                response = self.session.get(url, stream=True, timeout=self.timeout)
            else:
                response = requests.get(url, stream=True, timeout=self.timeout)
            with response:
                response.raise_for_status()
                total_size = int(response.headers.get("content-length", 0) or 0)
                downloaded = 0
                with open(part_path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        f.write(chunk)
                        downloaded += len(chunk)
                        if progress_callback:
                            progress_callback(downloaded, total_size)
            if total_size and downloaded < total_size:
                raise FetchFailedError(url, f"数据不完整 ({downloaded}/{total_size} 字节)")
            os.replace(part_path, dest)
        except FetchFailedError:
            self._discard(part_path)
            raise
        except (requests.RequestException, OSError, ValueError) as e:
            self._discard(part_path)
            self.logger.error(f"下载 {url} 失败: {e}")
            raise FetchFailedError(url, str(e)) from e

        self.logger.debug(f"下载完成: {dest} ({downloaded} 字节)")
        return dest

    def _discard(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"删除临时文件 {path} 失败: {e}")

    def extract(self, archive_path: Path, destination: Path) -> Path:
        """
        解压安装包到目标目录，去掉压缩包内的顶层目录。

        参数:
            archive_path: 压缩包路径（.tar.gz 或 .zip）
            destination: 目标目录，必须尚不存在

        返回:
            目标目录路径

        抛出:
            ExtractFailedError: 解压失败，此时不会留下目标目录
        """
        archive_path = Path(archive_path)
        destination = Path(destination)
        name = archive_path.name

        if name.endswith((".tar.gz", ".tgz")):
            extractor = self._extract_tar_gz
        elif name.endswith(".zip"):
            extractor = self._extract_zip
        else:
            raise ExtractFailedError(archive_path, "不支持的压缩包格式")

        try:
            self.temp_dir.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=".extract-", dir=self.temp_dir))
        except OSError as e:
            raise ExtractFailedError(archive_path, f"无法创建临时目录: {e}") from e

        self.logger.info(f"正在解压到 {destination}")
        try:
            extractor(archive_path, staging)
            destination.parent.mkdir(parents=True, exist_ok=True)
            os.rename(staging, destination)
        except ExtractFailedError:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        except (tarfile.TarError, zipfile.BadZipFile, InputValidationError, OSError, EOFError) as e:
            shutil.rmtree(staging, ignore_errors=True)
            self.logger.error(f"解压 {archive_path} 失败: {e}")
            raise ExtractFailedError(archive_path, str(e)) from e

        return destination

    def _extract_tar_gz(self, archive_path: Path, staging: Path) -> None:
        """解压 .tar.gz 安装包到临时目录。"""
        with tarfile.open(archive_path, "r:gz") as tf:
            members = tf.getmembers()
            prefix = _strip_prefix([m.name for m in members])
            hardlinks = []

            for member in members:
                InputValidator.validate_archive_member(member.name)
                relative = _relative_member(member.name, prefix)
                if relative is None:
                    continue
                target = Path(InputValidator.safe_join_path(str(staging), relative))

                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                elif member.isfile():
                    target.parent.mkdir(parents=True, exist_ok=True)
                    source = tf.extractfile(member)
                    if source is None:
                        continue
                    with source, open(target, "wb") as out:
                        shutil.copyfileobj(source, out)
                    os.chmod(target, member.mode & 0o777 or 0o644)
                elif member.issym():
                    self._create_symlink(staging, target, member.linkname)
                elif member.islnk():
                    hardlinks.append((target, member.linkname))
                else:
                    self.logger.debug(f"跳过特殊文件: {member.name}")

            for target, linkname in hardlinks:
                InputValidator.validate_archive_member(linkname)
                link_relative = _relative_member(linkname, prefix)
                if link_relative is None:
                    raise ExtractFailedError(archive_path, f"非法硬链接: {linkname}")
                source = Path(InputValidator.safe_join_path(str(staging), link_relative))
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target)

    def _create_symlink(self, staging: Path, target: Path, linkname: str) -> None:
        """在临时目录中重建符号链接，链接目标必须位于安装包内。"""
        if os.path.isabs(linkname):
            raise InputValidationError(f"符号链接指向绝对路径: {linkname}")
        resolved = os.path.normpath(os.path.join(target.parent, linkname))
        InputValidator.safe_join_path(str(staging), os.path.relpath(resolved, staging))
        target.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(linkname, target)

    def _extract_zip(self, archive_path: Path, staging: Path) -> None:
        """解压 .zip 安装包到临时目录。"""
        with zipfile.ZipFile(archive_path, "r") as zf:
            infos = zf.infolist()
            prefix = _strip_prefix([info.filename for info in infos])

            for info in infos:
                InputValidator.validate_archive_member(info.filename)
                relative = _relative_member(info.filename, prefix)
                if relative is None:
                    continue
                target = Path(InputValidator.safe_join_path(str(staging), relative))

                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue

                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as source, open(target, "wb") as out:
                    shutil.copyfileobj(source, out)

                mode = (info.external_attr >> 16) & 0o777
                if mode and not stat.S_ISLNK(info.external_attr >> 16):
                    os.chmod(target, mode)

    def install_payload(
        self,
        version: str,
        target_dir: Path,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Path:
        """
        下载并解压指定版本。

        目标目录只有在解压完全成功后才会出现；下载的压缩包无论成败都会被删除。

        参数:
            version: 版本号
            target_dir: 版本安装目录
            progress_callback: 下载进度回调函数

        返回:
            版本安装目录
        """
        url = self.build_download_url(version)
        archive_path = self.temp_dir / f"node-v{version}.{self.ext}"

        self.fetch(url, archive_path, progress_callback)
        try:
            return self.extract(archive_path, target_dir)
        finally:
            self._discard(archive_path)
