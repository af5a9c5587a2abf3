"""
NodeSpark 核心模块。

提供版本解析、远程目录、本地存储、激活配置、启动器管理和版本生命周期管理功能。
"""

from .interfaces import (
    IConfigManager, IRemoteFetcher, ILocalManager, IDownloadManager,
    IIndirection, ILauncherManager, IVersionManager,
)
from .settings import NodeSparkDirs, Settings, load_settings
from .config_manager import (
    ActivationRecord, ConfigManager, ConfigManagerError, ConfigCorruptError,
    ConfigIoError, ConfigValidationError,
)
from .remote_fetcher import RemoteFetcher, RemoteFetcherError, CatalogUnavailableError, NoVersionsPublishedError
from .resolver import VersionResolver, ResolverError, InvalidSpecifierError
from .local_manager import LocalManager, LocalManagerError, VersionScanError, GlobalPackagesError
from .download_manager import DownloadManager, DownloadManagerError, FetchFailedError, ExtractFailedError
from .launcher import (
    LauncherManager, SymlinkIndirection, ScriptIndirection, LauncherError,
    LauncherTargetMissingError, ActivationIncompleteError,
)
from .version_manager import (
    VersionManager, VersionManagerError, NotInstalledError, CannotRemoveActiveError,
    RemovalIoError, NoActiveVersionError,
)
from . import version_utils

NODESPARK_ERRORS = (
    ConfigManagerError,
    RemoteFetcherError,
    ResolverError,
    LocalManagerError,
    DownloadManagerError,
    LauncherError,
    VersionManagerError,
)

__all__ = [
    "IConfigManager", "IRemoteFetcher", "ILocalManager", "IDownloadManager",
    "IIndirection", "ILauncherManager", "IVersionManager",
    "NodeSparkDirs", "Settings", "load_settings",
    "ActivationRecord", "ConfigManager", "ConfigManagerError", "ConfigCorruptError",
    "ConfigIoError", "ConfigValidationError",
    "RemoteFetcher", "RemoteFetcherError", "CatalogUnavailableError", "NoVersionsPublishedError",
    "VersionResolver", "ResolverError", "InvalidSpecifierError",
    "LocalManager", "LocalManagerError", "VersionScanError", "GlobalPackagesError",
    "DownloadManager", "DownloadManagerError", "FetchFailedError", "ExtractFailedError",
    "LauncherManager", "SymlinkIndirection", "ScriptIndirection", "LauncherError",
    "LauncherTargetMissingError", "ActivationIncompleteError",
    "VersionManager", "VersionManagerError", "NotInstalledError", "CannotRemoveActiveError",
    "RemovalIoError", "NoActiveVersionError",
    "NODESPARK_ERRORS",
    "version_utils",
]
