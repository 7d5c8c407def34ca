"""
Configuration Manager for the accelerator context tools
Handles loading of config.ini defaults for both command-line tools.
"""

import configparser
import os
import sys
from pathlib import Path
from typing import List, Optional

from accelerators import DEFAULT_ACCELERATOR_TAG

SECTION = "Accelerators"


class ConfigManager:
    def __init__(self, config_file: Optional[str] = None):
        self.config_file = Path(config_file or os.getenv("ACCELERATOR_CONFIG") or "config.ini")
        self.parser = None

    def load(self) -> configparser.ConfigParser:
        """Load configuration from the INI file (once)."""
        if self.parser is not None:
            return self.parser

        self.parser = configparser.ConfigParser(interpolation=None)
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    self.parser.read_file(f)
            except (OSError, configparser.Error) as e:
                print(f"⚠️ Error reading {self.config_file}: {e}", file=sys.stderr)
                self.parser = configparser.ConfigParser(interpolation=None)
        return self.parser

    def _get(self, key: str) -> Optional[str]:
        parser = self.load()
        if not parser.has_section(SECTION):
            return None
        value = parser.get(SECTION, key, fallback=None)
        if value is None:
            return None
        return value.strip()

    def get_accelerator_tag(self) -> str:
        """Tag character: config.ini, then $ACCELERATOR_TAG, then '~'."""
        return self._get("tag") or os.getenv("ACCELERATOR_TAG") or DEFAULT_ACCELERATOR_TAG

    def get_search_path(self) -> List[str]:
        """Directories searched for source files named in catalog references."""
        value = self._get("search_path")
        if not value:
            return ["."]
        dirs = []
        for chunk in value.split():
            dirs.extend(d for d in chunk.split(os.pathsep) if d)
        return dirs or ["."]

    def use_msgid_fallback(self) -> bool:
        parser = self.load()
        if not parser.has_section(SECTION):
            return True
        try:
            return parser.getboolean(SECTION, "msgid_fallback", fallback=True)
        except ValueError as e:
            print(f"⚠️ Invalid msgid_fallback in {self.config_file}: {e}", file=sys.stderr)
            return True


# Global instance
config = ConfigManager()
