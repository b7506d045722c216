"""Loader for textual curve (trajectory) files.

The format is a subset of OBJ used for path lines:

    g <name>        starts a new line group
    v x y z         vertex position of the current curve
    vt a            vertex attribute of the current curve
    l i j k ...     terminates the current curve
    # ...           comment

Each "l" record closes the curve made of all "v"/"vt" records read since the
previous "l".
"""

import logging
import math
import numpy as np
from pathlib import Path
from typing import Iterable, List

from ..discretization.segments import Curve
from ..exceptions import CurveParseError

logger = logging.getLogger(__name__)

# Log progress once every this many line groups
GROUP_LOG_INTERVAL = 1000


class CurveLoader:
    """Parses curve files into Curve objects.

    Attributes:
        max_attribute: Largest attribute value seen by the last parse (>= 0)
        num_unknown_records: Number of skipped records with unknown commands
    """

    def __init__(self):
        self.max_attribute = 0.0
        self.num_unknown_records = 0

    def load(self, file_path: Path | str) -> List[Curve]:
        """Load all curves from a file.

        Args:
            file_path: Path to curve file

        Returns:
            List of curves in file order

        Raises:
            FileNotFoundError: If file doesn't exist
            CurveParseError: If a record cannot be parsed
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"Curve file not found: {file_path}")

        logger.info(f"Loading curves from {file_path}")
        with open(file_path, "r") as f:
            curves = self.parse_lines(f)
        logger.info(f"Loaded {len(curves)} curves (max attribute {self.max_attribute:g})")
        return curves

    def parse_lines(self, lines: Iterable[str]) -> List[Curve]:
        """Parse curve records from an iterable of text lines."""
        self.max_attribute = 0.0
        self.num_unknown_records = 0

        curves = []
        points = []
        attributes = []
        num_groups = 0

        for line_number, raw_line in enumerate(lines, start=1):
            # Strip Windows line endings and trailing blanks
            tokens = raw_line.rstrip("\r\n ").split()
            if not tokens:
                continue

            command = tokens[0]
            if command.startswith("#"):
                continue
            elif command == "g":
                num_groups += 1
                if num_groups % GROUP_LOG_INTERVAL == 0:
                    name = tokens[1] if len(tokens) > 1 else ""
                    logger.info(f"Parsing trajectory line group {name}...")
            elif command == "v":
                points.append(self._parse_floats(tokens, 3, line_number))
            elif command == "vt":
                attribute = self._parse_floats(tokens, 1, line_number)[0]
                attributes.append(attribute)
                self.max_attribute = max(self.max_attribute, attribute)
            elif command == "l":
                curves.append(Curve(
                    points=np.array(points, dtype=np.float64).reshape(-1, 3),
                    attributes=np.array(attributes, dtype=np.float64)
                ))
                points = []
                attributes = []
            else:
                self.num_unknown_records += 1
                logger.warning(f"Unknown command \"{command}\" in line {line_number}, skipping")

        if points or attributes:
            logger.warning(
                f"Ignoring {len(points)} trailing vertices not terminated by an \"l\" record"
            )
        return curves

    @staticmethod
    def _parse_floats(tokens: List[str], count: int, line_number: int) -> List[float]:
        if len(tokens) < count + 1:
            raise CurveParseError(
                f"\"{tokens[0]}\" record needs {count} values, got {len(tokens) - 1}",
                line_number=line_number
            )
        try:
            values = [float(token) for token in tokens[1:count + 1]]
        except ValueError as e:
            raise CurveParseError(f"Invalid number in \"{tokens[0]}\" record: {e}",
                                  line_number=line_number) from e
        if not all(math.isfinite(value) for value in values):
            raise CurveParseError(f"Non-finite value in \"{tokens[0]}\" record: {values}",
                                  line_number=line_number)
        return values


def load_curves(file_path: Path | str) -> List[Curve]:
    """Load curves from a file with a fresh CurveLoader."""
    return CurveLoader().load(file_path)
