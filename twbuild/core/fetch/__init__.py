from .base import Downloader, ExtractionResult
from .local import ExtractedTreeSource, LocalArchiveDownloader

__all__ = ["Downloader", "ExtractionResult", "ExtractedTreeSource", "LocalArchiveDownloader"]
