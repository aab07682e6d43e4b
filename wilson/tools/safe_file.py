# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Working-directory confined path resolution."""

from pathlib import Path

from wilson.core.exceptions import PathTraversalError


class SafePathResolver:
    """
    Resolves tool paths inside a working directory.

    Security features:
    - Relative paths resolve against the working directory
    - Resolved paths must stay inside the working directory
    - Symlinks pointing outside the working directory are rejected
    """

    def __init__(self, working_directory: str):
        self._root = Path(working_directory).expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _is_within_root(self, resolved_path: Path) -> bool:
        return resolved_path == self._root or resolved_path.is_relative_to(self._root)

    def _check_symlink_escape(self, path: Path) -> None:
        """Check if any component of the path is a symlink that escapes the root.

        Raises:
            PathTraversalError: If symlink escape is detected.
        """
        for parent in [path, *path.parents]:
            if parent.is_symlink():
                real_target = parent.resolve()
                if not self._is_within_root(real_target):
                    raise PathTraversalError(
                        f"Symlink '{parent}' points outside the working directory "
                        f"(target: {real_target})"
                    )

    def resolve(self, file_path: str) -> Path:
        """
        Resolve a tool-supplied path.

        Args:
            file_path: Absolute path or path relative to the working directory

        Returns:
            The resolved absolute path

        Raises:
            ValueError: If path is empty
            PathTraversalError: If path escapes the working directory
        """
        if not file_path or not file_path.strip():
            raise ValueError("Empty file path is not allowed")

        path = Path(file_path).expanduser()
        if not path.is_absolute():
            path = self._root / path

        existing = path
        while not existing.exists() and existing.parent != existing:
            existing = existing.parent
        if existing.exists():
            self._check_symlink_escape(existing)

        resolved_path = path.resolve()
        if not self._is_within_root(resolved_path):
            raise PathTraversalError(
                f"Path '{file_path}' resolves to '{resolved_path}' which is "
                f"outside the working directory: {self._root}"
            )
        return resolved_path
