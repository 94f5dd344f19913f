"""Comparison of platform deployment versions."""

from __future__ import annotations

import re

from .exceptions import VersionMismatchError

__all__ = ["Version"]

_VERSION_PATTERNS = (
    re.compile(r"master-\d+"),
    re.compile(r"v\d{8}(?:|-\d+)"),
)
"""Formats of comparable versions, in order of precedence.

Development deployments are versioned ``master-<build>`` and releases are
versioned ``v<YYYYMMDD>`` or ``v<YYYYMMDD>-<build>``. Versions of different
formats cannot be ordered.
"""


class Version(str):
    """Deployment version of the platform.

    Used to choose between alternate query texts when older deployments do
    not support a newer form of a query.
    """

    __slots__ = ()

    def before(self, *tags: str) -> bool:
        """Whether this version is older than the first comparable tag.

        Each format of version is compared only with tags of the same format.
        The first tag with the same format as this version is compared
        lexicographically. The version ``latest`` is never before anything.

        Parameters
        ----------
        *tags
            Version tags to compare with, typically one tag per version
            format.

        Returns
        -------
        bool
            `True` if this version is strictly before the matching tag.

        Raises
        ------
        VersionMismatchError
            Raised if this version has an unknown format or if none of the
            tags has the same format as this version.
        """
        version = self.strip()
        if version == "latest":
            return False

        for pattern in _VERSION_PATTERNS:
            if not pattern.fullmatch(version):
                continue
            for tag in tags:
                if pattern.fullmatch(tag.strip()):
                    return version < tag.strip()
            msg = f"no version tag matches the format of {version}"
            raise VersionMismatchError(msg)

        raise VersionMismatchError(f"unknown version format: {version}")

    def older_than(self, *tags: str) -> bool:
        """Whether this version is before the first comparable tag.

        Same as `before`, except that versions that cannot be compared are
        reported as not older.
        """
        try:
            return self.before(*tags)
        except VersionMismatchError:
            return False
