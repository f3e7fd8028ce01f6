"""
Output Manager — Timestamped crawl folders, JSON writing and retention cleanup.

Each crawl run gets a folder under the base output directory named
YYYYMMDD_HHMM_{network_name} (e.g., "20261019_1430_Flickr_User_Network").

Inside each folder, the orchestrator saves:
  - network.json:        The graph document (graph metadata, vertices, edges)
  - crawl_results.json:  Run metadata, outcome, statistics, counts

Folders older than OUTPUT_RETENTION_DAYS are deleted at the start of each CLI
run, before the new folder is created. retention_days=0 keeps everything.
"""

import json
import os
import re
import shutil
from datetime import datetime, timedelta
from typing import Any, Optional

_STAMP_FORMAT = "%Y%m%d_%H%M"
_FOLDER_PATTERN = re.compile(r"^(\d{8}_\d{4})_")


def run_time_of(folder_name: str) -> Optional[datetime]:
    """The run time stamped on a YYYYMMDD_HHMM_* folder name, or None."""
    match = _FOLDER_PATTERN.match(folder_name)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), _STAMP_FORMAT)
    except ValueError:
        return None


class OutputManager:
    """Manages crawl output folders.

    Attributes:
        base_dir: Root output directory (default: ./output).
        network_name: Used in folder naming (sanitized to alphanumeric, '-' and '_').
        retention_days: Delete folders older than this many days (0 = keep forever).
        current_dir: Path of this run's folder (None until created).
    """

    def __init__(self, base_dir: str, network_name: str, retention_days: int = 30,
                 now: Optional[datetime] = None):
        self.base_dir = base_dir
        self.network_name = network_name
        self.retention_days = retention_days
        self.current_dir: Optional[str] = None
        self._run_timestamp = now or datetime.now()

    @property
    def folder_name(self) -> str:
        safe_name = re.sub(r"[^0-9A-Za-z_-]", "_", self.network_name)
        return f"{self._run_timestamp.strftime(_STAMP_FORMAT)}_{safe_name}"

    def create_timestamped_dir(self) -> str:
        """Create this run's folder and return its path."""
        self.current_dir = os.path.join(self.base_dir, self.folder_name)
        os.makedirs(self.current_dir, exist_ok=True)
        return self.current_dir

    def cleanup_old_folders(self, debug: bool = False) -> int:
        """Delete run folders whose name stamp is past the retention window.

        Returns:
            The number of folders deleted.
        """
        if self.retention_days <= 0 or not os.path.isdir(self.base_dir):
            return 0

        cutoff = datetime.now() - timedelta(days=self.retention_days)
        expired = [
            name for name in sorted(os.listdir(self.base_dir))
            if os.path.isdir(os.path.join(self.base_dir, name))
            and (run_time_of(name) or cutoff) < cutoff
        ]

        deleted_count = 0
        for name in expired:
            try:
                shutil.rmtree(os.path.join(self.base_dir, name))
            except OSError as e:
                if debug:
                    print(f"  Warning: Could not delete output folder {name}: {e}")
                continue
            deleted_count += 1
            if debug:
                print(f"  Deleted old output folder: {name}")
        return deleted_count

    def get_output_path(self, filename: str) -> str:
        """Path of filename inside this run's folder (the folder must exist)."""
        if self.current_dir is None:
            raise RuntimeError("No run folder yet; call create_timestamped_dir() first")
        return os.path.join(self.current_dir, filename)

    def write_json(self, filename: str, data: Any) -> str:
        """Write data as indented JSON into this run's folder and return the path."""
        path = self.get_output_path(filename)
        with open(path, "w") as f:
            json.dump(data, f, indent=2, default=str)
        return path
