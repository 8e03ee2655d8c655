"""Analysis result caching for NoteMap."""

import hashlib
import pickle
from pathlib import Path
from typing import Optional

from .config import DEFAULT_CONFIG, AnalysisConfig
from .logging_config import get_logger
from .models import AnalysisResult

logger = get_logger(__name__)

# Bump this when AnalysisResult schema changes to invalidate stale cache
CACHE_VERSION = 1


class ResultCache:
    """Cache for analysis results keyed by audio content and analysis settings."""

    def __init__(self, cache_dir: Optional[Path] = None, config: AnalysisConfig = None):
        """Initialize cache.

        Args:
            cache_dir: Directory for cache files. Defaults to ./.notemap/cache
            config: Analysis configuration folded into every key.
        """
        if cache_dir is None:
            cache_dir = Path.cwd() / ".notemap" / "cache"

        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.config = config or DEFAULT_CONFIG
        logger.debug("Cache directory: %s", self.cache_dir)

    def _config_tag(self) -> str:
        cfg = self.config
        return f"{cfg.sample_rate}-{cfg.fft_size}-{cfg.hop_size}-{cfg.beat_window_divisor}"

    def _get_file_hash(self, file_path: str) -> str:
        """Calculate MD5 hash of file content."""
        hasher = hashlib.md5()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                hasher.update(chunk)
        return hasher.hexdigest()

    def _cache_file(self, file_path: str, cache_key: Optional[str]) -> Path:
        base = cache_key if cache_key else self._get_file_hash(file_path)
        digest = hashlib.md5(f"{base}:{self._config_tag()}".encode()).hexdigest()
        return self.cache_dir / f"{digest}.pkl"

    def get(self, file_path: str, cache_key: Optional[str] = None) -> Optional[AnalysisResult]:
        """Get cached result, returning None if missing or stale."""
        try:
            cache_file = self._cache_file(file_path, cache_key)
            if not cache_file.exists():
                logger.debug("Cache miss: %s", cache_key or file_path)
                return None

            with open(cache_file, "rb") as f:
                result = pickle.load(f)

            if not isinstance(result, AnalysisResult):
                logger.debug("Cache stale (not AnalysisResult): %s", cache_key or file_path)
                cache_file.unlink(missing_ok=True)
                return None
            if getattr(result, "version", 0) < CACHE_VERSION:
                logger.debug(
                    "Cache stale (version %s < %s): %s",
                    getattr(result, "version", 0),
                    CACHE_VERSION,
                    cache_key or file_path,
                )
                cache_file.unlink(missing_ok=True)
                return None

            logger.debug("Cache hit: %s", cache_key or file_path)
            return result
        except Exception as e:
            logger.warning("Cache read error: %s", e)
            return None

    def set(self, file_path: str, result: AnalysisResult, cache_key: Optional[str] = None):
        """Cache result for file."""
        try:
            with open(self._cache_file(file_path, cache_key), "wb") as f:
                pickle.dump(result, f)
            logger.debug("Cached result: %s", cache_key or file_path)
        except Exception as e:
            logger.warning("Cache write error: %s", e)

    def clear(self):
        """Clear all cached results."""
        for cache_file in self.cache_dir.glob("*.pkl"):
            cache_file.unlink()
        logger.info("Cache cleared")
