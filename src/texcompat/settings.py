"""Settings shared by the decoders, the encoders and the CLI"""

import json
import logging
from dataclasses import dataclass, asdict, field, fields
from pathlib import Path
from typing import List, Union

from .errors import InvalidParameter
from .single_image import CodecHooks, default_hooks

logger = logging.getLogger(__name__)


@dataclass
class CompatSettings:
    """Configuration for legacy texture decoding and re-encoding"""

    # Decoding
    size_limit: int = 0
    convert_indexed: bool = True

    # Encoding
    compress_lossless: bool = False
    pcfg_style: bool = False

    # Single-image codecs
    enable_png: bool = True
    enable_webp: bool = True

    # File scanning
    path_whitelist: List[str] = field(default_factory=list)
    path_blacklist: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.size_limit < 0:
            raise InvalidParameter(f"size_limit must be >= 0, got {self.size_limit}")

    def to_dict(self) -> dict:
        """Convert settings to a JSON-serialisable dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CompatSettings":
        """Build settings from a dictionary; unknown keys are ignored"""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.debug("Ignoring unknown settings: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})

    def hooks(self) -> CodecHooks:
        return default_hooks(enable_png=self.enable_png, enable_webp=self.enable_webp)


def load_settings(path: Union[str, Path]) -> CompatSettings:
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise InvalidParameter(f"Settings file {path} must hold a JSON object")
    return CompatSettings.from_dict(data)


def save_settings(settings: CompatSettings, path: Union[str, Path]):
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(settings.to_dict(), f, indent=2)
