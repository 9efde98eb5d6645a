"""JSON output writer."""

import json
import logging
from pathlib import Path

from src.data.models.option import Option

logger = logging.getLogger("wheelscreener")


class JSONWriter:
    """JSON file writer for screened option rows."""

    def __init__(self, output_path: Path | str) -> None:
        """Initialize JSON writer.

        Args:
            output_path: Path to output JSON file.
        """
        self.output_path = Path(output_path)

    def write(self, options: list[Option], total_count: int | None = None) -> None:
        """Write option rows to the JSON file.

        Args:
            options: Normalized rows to write.
            total_count: Matches across all pages; written alongside the rows when given.
        """
        if not options:
            logger.warning("No data to write to JSON")
            return

        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        rows = [option.to_dict() for option in options]
        data: object = rows if total_count is None else {"options": rows, "count": total_count}

        with open(self.output_path, "w", encoding="utf-8") as output_file:
            json.dump(data, output_file, indent=2, default=str)

        logger.info(f"Wrote {len(options)} records to {self.output_path}")
