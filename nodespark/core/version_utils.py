"""
版本工具模块。

提供语义化版本号的解析、规范化和排序工具函数。
"""

import re
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

SEMVER_PATTERN = re.compile(
    r'^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)'
    r'(?:-((?:0|[1-9]\d*|\d*[A-Za-z-][0-9A-Za-z-]*)'
    r'(?:\.(?:0|[1-9]\d*|\d*[A-Za-z-][0-9A-Za-z-]*))*))?'
    r'(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$'
)


class SemVer(NamedTuple):
    """解析后的语义化版本。"""

    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = ()
    build: Tuple[str, ...] = ()

    def precedence_key(self) -> tuple:
        """
        返回用于比较优先级的键。

        构建元数据不参与比较；带预发布标识的版本低于对应的正式版本。
        """
        if not self.prerelease:
            return (self.major, self.minor, self.patch, 1, ())
        identifiers = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part)
            for part in self.prerelease
        )
        return (self.major, self.minor, self.patch, 0, identifiers)


def parse_version(version_str: str) -> Optional[SemVer]:
    """
    解析语义化版本字符串。

    参数:
        version_str: 版本字符串，不带前缀 "v"

    返回:
        SemVer 实例，无法解析时返回 None
    """
    if not version_str:
        return None
    match = SEMVER_PATTERN.match(version_str)
    if not match:
        return None
    major, minor, patch, prerelease, build = match.groups()
    return SemVer(
        int(major),
        int(minor),
        int(patch),
        tuple(prerelease.split(".")) if prerelease else (),
        tuple(build.split(".")) if build else (),
    )


def is_valid_version(version_str: str) -> bool:
    """判断字符串是否为合法的语义化版本。"""
    return parse_version(version_str) is not None


def normalize_version(version_str: str) -> Optional[str]:
    """
    规范化版本字符串：去除首尾空白和可选的前缀 "v"。

    参数:
        version_str: 用户输入的版本字符串

    返回:
        规范化后的版本字符串，不是合法语义化版本时返回 None
    """
    if not version_str:
        return None
    candidate = version_str.strip()
    if is_valid_version(candidate):
        return candidate
    if candidate[:1] == "v" and is_valid_version(candidate[1:]):
        return candidate[1:]
    return None


def sort_versions_desc(
    versions: List[Any],
    key: Optional[Callable[[Any], str]] = None,
) -> List[Any]:
    """
    按版本号降序排列版本列表。

    可解析的版本按语义化版本优先级降序排列；无法解析的条目排在最后，
    彼此之间按字典序降序排列。

    参数:
        versions: 版本字符串列表，或配合 key 使用的任意对象列表
        key: 从元素中取出版本字符串的函数，默认使用元素本身

    返回:
        排序后的新列表
    """
    get_version = key or (lambda item: item)

    parsed = []
    opaque = []
    for item in versions:
        semver = parse_version(get_version(item))
        if semver is None:
            opaque.append(item)
        else:
            parsed.append((semver.precedence_key(), item))

    parsed.sort(key=lambda pair: pair[0], reverse=True)
    opaque.sort(key=get_version, reverse=True)
    return [item for _, item in parsed] + opaque
