"""CSV file sink for projected report rows."""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Union

from ..pipeline_types import ResourceKind

logger = logging.getLogger(__name__)


class CSVSink:
    """Write pre-escaped CSV lines to ``<output_dir>/<prefix>-<kind>.csv``.

    The first project of a run truncates each file and writes its header;
    later projects append. A path that was never initialized during the run
    gets its header on first write regardless, so every file carries exactly
    one header line. Text UTF-8 cannot encode is written backslash-escaped.
    """

    def __init__(self, output_dir: Union[Path, str, None] = None):
        self.output_dir = Path(output_dir) if output_dir is not None else Path.cwd()
        self._initialized: set[Path] = set()

    def output_path_for(self, prefix: str, kind: ResourceKind) -> Path:
        return self.output_dir / f"{prefix}-{kind.value}.csv"

    def write(
        self,
        lines: Sequence[str],
        output_path: Path,
        header: Sequence[str],
        is_first_project_in_run: bool,
    ) -> int:
        """Write one batch of rows.

        Args:
            lines: Escaped CSV lines without terminators.
            output_path: Target file.
            header: Column names written when the file is (re)created.
            is_first_project_in_run: Truncate and write the header when True,
                append otherwise.

        Returns:
            Number of data rows written.

        Raises:
            OSError: If the file cannot be opened or written.
        """
        output_path = Path(output_path)
        create = is_first_project_in_run or output_path not in self._initialized
        if not is_first_project_in_run and create:
            logger.debug(f"{output_path} not initialized in this run, writing header")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        mode = "w" if create else "a"
        # Lone surrogates from JSON escapes cannot be encoded as UTF-8
        with open(output_path, mode, encoding="utf-8", errors="backslashreplace", newline="") as f:
            if create:
                f.write(",".join(header) + "\n")
            for line in lines:
                f.write(line + "\n")

        self._initialized.add(output_path)
        logger.debug(f"Wrote {len(lines)} rows to {output_path}")
        return len(lines)
