"""Result writer for saving job output."""

import json
from pathlib import Path
from typing import Any

from inkflow.domain import JobResult
from inkflow.exceptions import ResultSaveError


class ResultWriter:
    """Writes job results as JSON documents.

    The document holds the joined path string as well as every segment, so
    consumers can either draw it in one go or address sub-paths individually.

    Example:
        writer = ResultWriter(Path("out.json"))
        writer.write(result, width=800, height=600)
    """

    def __init__(self, output_path: Path) -> None:
        """Initialize the writer.

        Args:
            output_path: Destination file
        """
        self._output_path = output_path

    @property
    def output_path(self) -> Path:
        return self._output_path

    @staticmethod
    def to_document(result: JobResult, width: int, height: int) -> dict[str, Any]:
        """Build the JSON document for a result."""
        return {
            "algorithm": result.algorithm,
            "seed": result.seed,
            "width": width,
            "height": height,
            "stroke_width": result.stroke_width,
            "path": result.path,
            "paths": list(result.segments),
        }

    def write(self, result: JobResult, width: int, height: int) -> None:
        """Write a result to disk.

        Raises:
            ResultSaveError: If the file cannot be written
        """
        document = self.to_document(result, width, height)
        try:
            self._output_path.parent.mkdir(parents=True, exist_ok=True)
            self._output_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        except OSError as e:
            raise ResultSaveError(str(self._output_path), str(e)) from e
