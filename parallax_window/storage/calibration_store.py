"""
Calibration data storage.

Privacy & Security:
- Local-only storage (no network)
- Path traversal protection
- Field-by-field validation on load
- Safe JSON serialization

Failure policy: a missing or corrupt store degrades to defaults and a
failed write only logs. Calibration must never block startup.
"""

import json
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional

from parallax_window.core.config import StorageConfig
from parallax_window.storage.schema import Calibration, DEFAULT_CALIBRATION
from parallax_window.utils.logger import get_logger

logger = get_logger(__name__)


class CalibrationStoreError(Exception):
    """Calibration storage errors."""

    pass


class JsonKeyValueFile:
    """
    Durable key-value storage backed by a single JSON document.

    Each key holds one record, so several versioned records (or
    profiles) can share a file without clobbering each other.
    """

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> Dict[str, Any]:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except RecursionError:
            # Pathologically nested JSON
            raise ValueError("Storage document is corrupt")

        if not isinstance(document, dict):
            raise ValueError("Storage document is not a JSON object")

        return document

    def get_item(self, key: str) -> Optional[Any]:
        """
        Read one record.

        Returns:
            Decoded record, or None if the file or key is absent

        Raises:
            OSError, ValueError: If the document is unreadable or corrupt
        """
        if not self._path.exists():
            return None
        return self._read_all().get(key)

    def set_item(self, key: str, value: Any):
        """
        Write one record, preserving other keys.

        Raises:
            OSError: If the write fails
        """
        try:
            document = self._read_all() if self._path.exists() else {}
        except ValueError:
            logger.warning(f"Overwriting corrupt storage document: {self._path}")
            document = {}

        document[key] = value

        # Write to temporary file first (atomic write)
        temp_path = self._path.with_suffix(".tmp")

        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, ensure_ascii=False)

        # Atomic replace
        temp_path.replace(self._path)

    def remove_item(self, key: str) -> bool:
        """
        Delete one record.

        Returns:
            True if the key existed
        """
        if not self._path.exists():
            return False

        document = self._read_all()
        if key not in document:
            return False

        del document[key]

        temp_path = self._path.with_suffix(".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, ensure_ascii=False)
        temp_path.replace(self._path)

        return True


class UnavailableStorage:
    """
    Stand-in backend when the data directory cannot be used.

    Reads find nothing and writes fail, so the store runs on defaults
    for the session.
    """

    def __init__(self, path: Path, reason: str):
        self._path = path
        self._reason = reason

    @property
    def path(self) -> Path:
        return self._path

    def get_item(self, key: str) -> Optional[Any]:
        return None

    def set_item(self, key: str, value: Any):
        raise OSError(f"Storage unavailable: {self._reason}")

    def remove_item(self, key: str) -> bool:
        return False


class CalibrationStore:
    """
    Persistent physical screen calibration.

    Holds the current Calibration in memory and mirrors it to a
    versioned key in local storage. The storage key and defaults are
    constructor parameters, so independent profiles can coexist.
    """

    def __init__(
        self,
        config: StorageConfig,
        defaults: Calibration = DEFAULT_CALIBRATION,
        backend: Optional[JsonKeyValueFile] = None,
    ):
        """
        Initialize calibration store and load persisted data.

        Args:
            config: Storage configuration
            defaults: Values used for missing or invalid fields
            backend: Key-value storage (default: JSON file in data_dir)

        Raises:
            CalibrationStoreError: If the calibration file would escape data_dir
        """
        defaults.validate()

        self._config = config
        self._key = config.storage_key
        self._defaults = defaults

        if backend is None:
            backend = self._open_backend(config)

        self._backend = backend
        self._calibration = self.load()

        logger.info(f"CalibrationStore initialized: {self._backend.path} [{self._key}]")

    def _open_backend(self, config: StorageConfig):
        """
        Build the file backend for config.data_dir.

        An unusable directory degrades to UnavailableStorage; only a
        traversal attempt is an error.

        Raises:
            CalibrationStoreError: If the calibration file would escape data_dir
        """
        try:
            self._data_dir = config.data_dir.resolve(strict=False)
        except (RuntimeError, OSError) as e:
            logger.error(f"Invalid storage path, calibration will not persist: {e}")
            return UnavailableStorage(config.calibration_path, str(e))

        calibration_path = self._data_dir / config.calibration_filename

        # Ensure we're still within the intended directory
        if not self._is_safe_path(calibration_path):
            raise CalibrationStoreError("Path traversal detected")

        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Storage directory unavailable, calibration will not persist: {e}")
            return UnavailableStorage(calibration_path, str(e))

        return JsonKeyValueFile(calibration_path)

    def load(self) -> Calibration:
        """
        Load calibration from storage, merged over the defaults.

        Returns:
            Calibration (defaults if nothing usable is stored)
        """
        try:
            record = self._backend.get_item(self._key)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load calibration, using defaults: {e}")
            return self._defaults

        if record is None:
            logger.info("No calibration data found, using defaults")
            return self._defaults

        calibration = Calibration.from_dict(record, self._defaults)
        logger.info(f"Calibration loaded: {calibration}")
        return calibration

    def save(self, calibration: Calibration) -> bool:
        """
        Persist calibration and make it current.

        Write failures are logged, not raised; the calibration stays
        valid in memory for this session.

        Args:
            calibration: Calibration to save

        Returns:
            True if persisted
        """
        calibration.validate()
        self._calibration = calibration

        try:
            self._backend.set_item(self._key, calibration.to_dict())
        except OSError as e:
            logger.error(f"Failed to save calibration: {e}")
            return False

        logger.info("Calibration saved")
        return True

    def update_screen_dimensions(self, width_cm: float, height_cm: float) -> Calibration:
        """
        Set physical screen size and persist immediately.

        Raises:
            ValueError: If either dimension is not positive
        """
        updated = self._calibration.with_screen_dimensions(width_cm, height_cm)
        self.save(updated)
        return updated

    def update_pixel_dimensions(self, width: int, height: int) -> Calibration:
        """
        Set screen resolution. Not persisted: resolution follows the
        live window and is display-only.

        Raises:
            ValueError: If either dimension is not a positive integer
        """
        self._calibration = self._calibration.with_pixel_dimensions(width, height)
        logger.debug(f"Pixel dimensions updated: {width}x{height}")
        return self._calibration

    def update_viewing_distance(self, distance_cm: float) -> Calibration:
        """
        Set reference viewing distance and persist immediately.

        Raises:
            ValueError: If distance is not positive
        """
        updated = self._calibration.with_viewing_distance(distance_cm)
        self.save(updated)
        return updated

    def mark_calibrated(self, calibrated: bool = True) -> Calibration:
        """Flag the geometry as user-measured and persist."""
        updated = replace(self._calibration, is_calibrated=bool(calibrated))
        self.save(updated)
        return updated

    def reset(self) -> Calibration:
        """Restore defaults and remove the persisted record."""
        self._calibration = self._defaults

        try:
            self._backend.remove_item(self._key)
            logger.info("Calibration data deleted")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to delete calibration: {e}")

        return self._calibration

    def current(self) -> Calibration:
        """
        Get current calibration.

        Calibration is frozen, so the caller cannot alter the
        store through the returned value.
        """
        return self._calibration

    def exists(self) -> bool:
        """
        Check if a calibration record is persisted.

        Returns:
            True if the versioned key holds a record
        """
        try:
            return self._backend.get_item(self._key) is not None
        except (OSError, ValueError):
            return False

    @property
    def storage_key(self) -> str:
        return self._key

    def _is_safe_path(self, path: Path) -> bool:
        """
        Check if path is safe (within data directory).

        Args:
            path: Path to check

        Returns:
            True if safe, False if potential traversal attack
        """
        try:
            resolved = path.resolve(strict=False)
            return resolved.parent == self._data_dir
        except (RuntimeError, OSError):
            return False
