"""
Shell profile mutator.

Two edit modes are offered to steps:

* append(block): write the block verbatim at the end of the file. Not
  idempotent by itself; callers guard it with contains(marker) in their
  precondition.
* replace_line(pattern, line): rewrite every line matching the anchored
  regex in place, or append line when nothing matches.

The first mutation of a run backs up the existing file once, named after
the run start time.
"""

import datetime
import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from ubuntu_dev_setup import LOGGER_NAME
from ubuntu_dev_setup.errors import ProfileWriteError

logger = logging.getLogger(LOGGER_NAME)


class ProfileMutator:
    def __init__(
        self,
        path: Union[str, Path],
        run_started: Optional[datetime.datetime] = None,
    ):
        self.path = Path(path)
        self.run_started = run_started or datetime.datetime.now()
        self.backup_path: Optional[Path] = None
        self.writes = 0
        self._backup_checked = False

    # ----------------------------------------------------------------
    # Read-only helpers (safe for preconditions)
    # ----------------------------------------------------------------
    def read(self) -> str:
        try:
            return self.path.read_text()
        except FileNotFoundError:
            return ""
        except OSError as e:
            raise ProfileWriteError(
                f"Cannot read {self.path}: {e}", first_write=self.writes == 0
            ) from e

    def contains(self, marker: str) -> bool:
        return any(line.strip() == marker.strip() for line in self.read().splitlines())

    def matching(self, pattern: str) -> List[str]:
        regex = re.compile(pattern)
        return [line for line in self.read().splitlines() if regex.match(line)]

    def has_line(self, pattern: str) -> bool:
        return bool(self.matching(pattern))

    def line_is(self, pattern: str, line: str) -> bool:
        """True when pattern matches at least one line and every match equals line."""
        matches = self.matching(pattern)
        return bool(matches) and all(match == line for match in matches)

    # ----------------------------------------------------------------
    # Mutations
    # ----------------------------------------------------------------
    def backup_once(self) -> Optional[Path]:
        """Copy the pre-run file aside on the first call of the run only."""
        if self._backup_checked:
            return self.backup_path
        self._backup_checked = True
        if not self.path.is_file():
            return None
        timestamp = self.run_started.strftime("%Y%m%d%H%M%S")
        backup_path = self.path.with_name(f"{self.path.name}.bak.{timestamp}")
        try:
            shutil.copy2(self.path, backup_path)
        except OSError as e:
            raise ProfileWriteError(
                f"Failed to back up {self.path}: {e}", first_write=self.writes == 0
            ) from e
        logger.info(f"Backed up {self.path} to {backup_path}")
        self.backup_path = backup_path
        return backup_path

    def append(self, block: str) -> None:
        self._prepare()
        existing = self.read()
        if existing and not existing.endswith("\n"):
            # The block starts on its own line.
            block = "\n" + block
        if not block.endswith("\n"):
            block += "\n"
        try:
            with open(self.path, "a") as f:
                f.write(block)
        except OSError as e:
            raise ProfileWriteError(
                f"Failed to append to {self.path}: {e}", first_write=self.writes == 0
            ) from e
        self.writes += 1
        logger.debug(f"Appended {len(block.splitlines())} line(s) to {self.path}")

    def replace_line(self, pattern: str, line: str) -> None:
        """Replace lines matching pattern with line, appending if none match."""
        regex = re.compile(pattern)
        lines = self.read().splitlines()
        if not any(regex.match(existing) for existing in lines):
            self.append(line)
            return
        self._prepare()
        updated = [line if regex.match(existing) else existing for existing in lines]
        try:
            self._write_atomic("\n".join(updated) + "\n")
        except OSError as e:
            raise ProfileWriteError(
                f"Failed to rewrite {self.path}: {e}", first_write=self.writes == 0
            ) from e
        self.writes += 1
        logger.debug(f"Replaced '{pattern}' in {self.path} with: {line}")

    def _write_atomic(self, content: str) -> None:
        """Write content to a sibling temp file, then rename it over path."""
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w") as f:
                f.write(content)
            shutil.copymode(self.path, tmp_path)
            os.replace(tmp_path, self.path)
        except OSError:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def _prepare(self) -> None:
        self.backup_once()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ProfileWriteError(
                f"Cannot create {self.path.parent}: {e}", first_write=self.writes == 0
            ) from e
