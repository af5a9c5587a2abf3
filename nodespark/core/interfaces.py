"""
核心模块抽象接口定义。

定义配置管理、版本存储、远程目录、下载、启动器和版本管理等核心模块的抽象接口。
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional


class IConfigManager(ABC):
    """激活配置管理器抽象接口。"""

    @abstractmethod
    def load(self) -> Any:
        """加载激活记录，配置文件不存在时写入默认记录。"""
        pass

    @abstractmethod
    def save(self, record: Any) -> None:
        """整体覆盖保存激活记录。"""
        pass


class IRemoteFetcher(ABC):
    """远程版本目录抽象接口。"""

    @abstractmethod
    def fetch_catalog(self) -> List[str]:
        """获取远程可用版本号列表，最新版本在前。"""
        pass

    @abstractmethod
    def get_remote_versions(self) -> List[Dict[str, Any]]:
        """获取远程可用版本的详细信息列表，最新版本在前。"""
        pass


class ILocalManager(ABC):
    """已安装版本存储抽象接口。"""

    @abstractmethod
    def list_versions(self) -> List[str]:
        """列出已安装版本，按展示顺序排序。"""
        pass

    @abstractmethod
    def exists(self, version: str) -> bool:
        """判断指定版本是否已安装。"""
        pass

    @abstractmethod
    def get_version_path(self, version: str) -> Path:
        """获取指定版本的安装目录。"""
        pass

    @abstractmethod
    def list_global_packages(self, npm_path: Path) -> List[Dict[str, str]]:
        """列出全局安装的 npm 包。"""
        pass


class IDownloadManager(ABC):
    """安装包下载与解压抽象接口。"""

    @abstractmethod
    def build_download_url(self, version: str) -> str:
        """构建指定版本在当前平台上的下载地址。"""
        pass

    @abstractmethod
    def install_payload(
        self,
        version: str,
        target_dir: Path,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Path:
        """下载并解压指定版本，完成后目标目录才可见。"""
        pass


class IIndirection(ABC):
    """启动器间接层抽象接口（符号链接或转发脚本）。"""

    @abstractmethod
    def launcher_path(self, bin_dir: Path, name: str) -> Path:
        """获取启动器在稳定目录中的路径。"""
        pass

    @abstractmethod
    def target_path(self, version_dir: Path, name: str) -> Path:
        """获取启动器在指定版本目录中指向的可执行文件路径。"""
        pass

    @abstractmethod
    def create(self, target: Path, link: Path) -> None:
        """创建一个指向 target 的启动器。"""
        pass

    @abstractmethod
    def read(self, link: Path) -> Optional[Path]:
        """读取启动器当前指向的目标，不存在时返回 None。"""
        pass


class ILauncherManager(ABC):
    """启动器管理器抽象接口。"""

    @abstractmethod
    def activate(self, version_dir: Path) -> List[str]:
        """将所有启动器切换到指定版本目录。"""
        pass

    @abstractmethod
    def launcher_path(self, name: str) -> Path:
        """获取指定启动器在稳定目录中的路径。"""
        pass

    @abstractmethod
    def read_target(self, name: str) -> Optional[Path]:
        """读取指定启动器当前指向的目标。"""
        pass


class IVersionManager(ABC):
    """版本生命周期管理器抽象接口。"""

    @abstractmethod
    def install(
        self,
        specifier: str,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Dict[str, Any]:
        """安装指定版本。"""
        pass

    @abstractmethod
    def use(self, specifier: str) -> str:
        """切换到指定版本。"""
        pass

    @abstractmethod
    def remove(self, specifier: str) -> str:
        """删除指定版本。"""
        pass

    @abstractmethod
    def list_local(self) -> List[Dict[str, Any]]:
        """列出本地已安装版本。"""
        pass

    @abstractmethod
    def list_remote(self, limit: int = 30) -> Dict[str, Any]:
        """列出远程可用版本。"""
        pass

    @abstractmethod
    def get_current_version(self) -> Optional[str]:
        """获取当前激活的版本。"""
        pass
