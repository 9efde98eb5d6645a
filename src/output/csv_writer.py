"""CSV output writer."""

import csv
import logging
from collections.abc import Sequence
from pathlib import Path

from src.data.models.option import Option
from src.filters.registry import ALL_COLUMNS

logger = logging.getLogger("wheelscreener")


class CSVWriter:
    """CSV file writer for screened option rows."""

    def __init__(
        self,
        output_path: Path | str,
        columns: Sequence[str] = ALL_COLUMNS,
        append: bool = False,
    ) -> None:
        """Initialize CSV writer.

        Args:
            output_path: Path to output CSV file.
            columns: camelCase Option fields written, in order.
            append: If True, append to existing file instead of overwriting.
        """
        self.output_path = Path(output_path)
        self.columns = list(columns)
        self.append = append

    def write(self, options: list[Option]) -> None:
        """Write option rows to the CSV file.

        Args:
            options: Normalized rows to write.
        """
        if not options:
            logger.warning("No data to write to CSV")
            return

        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        mode = "a" if self.append else "w"
        file_exists = self.output_path.exists() and self.append

        with open(self.output_path, mode, newline="", encoding="utf-8") as output_file:
            dict_writer = csv.DictWriter(output_file, self.columns, extrasaction="ignore")
            if not file_exists:
                dict_writer.writeheader()
            dict_writer.writerows(option.to_dict() for option in options)

        action = "Appended" if self.append else "Wrote"
        logger.info(f"{action} {len(options)} records to {self.output_path}")
