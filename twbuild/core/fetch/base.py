from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from ..capabilities.registry import classify


@dataclass(frozen=True)
class ExtractionResult:
    """``root_path`` contains ``tailwindcss-<version>/``."""

    root_path: Path
    version: str

    @property
    def source_dir(self) -> Path:
        return self.root_path / f"tailwindcss-{classify(self.version).normalized}"


class Downloader(ABC):
    name: str

    @abstractmethod
    def fetch(self, version: str, dest_root: Path) -> ExtractionResult:
        """Make the sources for ``version`` available under ``dest_root``.

        Raises ``FetchFailed`` if they cannot be obtained and
        ``SourceLayoutInvalid`` if they do not have the expected layout.
        """
