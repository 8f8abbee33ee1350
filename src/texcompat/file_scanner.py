"""Texture container discovery with whitelist/blacklist path filtering"""

from pathlib import Path
from typing import Dict, List, Optional

from .stream_texture import TextureVersionType, recognize_texture_file

# Extensions legacy exports use for texture containers
TEXTURE_PATTERNS = [
    "*.stex",
    "*.tex3d",
    "*.texarr",
    "*.ctex",
    "*.ctexarray",
    "*.ccube",
    "*.ccubearray",
    "*.ctex3d",
    "*.tex",
    "*.res",
]


class FileScanner:
    """Handles file discovery with whitelist/blacklist path filtering"""

    def __init__(self, path_whitelist: List[str] = None, path_blacklist: List[str] = None):
        """
        Initialize file scanner with optional path filters.

        Args:
            path_whitelist: Path components that MUST be present (e.g., ["textures"])
            path_blacklist: Path components to exclude (e.g., ["icons", ".import"])
        """
        self.path_whitelist = [p.lower() for p in (path_whitelist or [])]
        self.path_blacklist = [p.lower() for p in (path_blacklist or [])]

    def should_process_path(self, path: Path) -> bool:
        """
        Check if a file path passes whitelist and blacklist filters.

        Args:
            path: Path to check

        Returns:
            True if path should be processed, False otherwise
        """
        path_parts = [p.lower() for p in path.parts]

        # Must contain ALL whitelisted components
        for required in self.path_whitelist:
            if not any(required in part for part in path_parts):
                return False

        # Must not contain ANY blacklisted components
        for blocked in self.path_blacklist:
            if any(blocked in part for part in path_parts):
                return False

        return True

    def find_files(self, input_dir: Path, patterns: Optional[List[str]] = None) -> List[Path]:
        """
        Find files matching patterns, respecting whitelist/blacklist filters.

        Args:
            input_dir: Root directory to search
            patterns: Glob patterns to match; defaults to the known texture extensions

        Returns:
            Sorted list of matching paths
        """
        input_dir = Path(input_dir)
        found = set()
        for pattern in patterns or TEXTURE_PATTERNS:
            found.update(p for p in input_dir.rglob(pattern) if p.is_file())

        return sorted(f for f in found if self.should_process_path(f.relative_to(input_dir)))

    def find_textures(self, input_dir: Path,
                      patterns: Optional[List[str]] = None) -> Dict[Path, TextureVersionType]:
        """
        Find files whose magic identifies them as texture containers.

        Binary resources are kept since they may hold V2 image properties.
        Files too short to hold a magic or with an unknown magic are dropped.
        """
        textures = {}
        for path in self.find_files(input_dir, patterns):
            kind = recognize_texture_file(path)
            if kind is not TextureVersionType.NOT_TEXTURE:
                textures[path] = kind
        return textures
