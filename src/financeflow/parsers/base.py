from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from financeflow.domain.models import ParsedStatement
from financeflow.normalization import StatementNormalizer

class StatementParser(ABC):
    """
    Abstract base class for all statement parsers.

    This implements the Strategy pattern - each statement source (LLM reply,
    PDF, spreadsheet export) gets its own concrete parser that implements
    this interface. Parsers hand their raw records to a StatementNormalizer,
    so every parser returns clean, de-duplicated transactions.
    """

    def __init__(self, normalizer: Optional[StatementNormalizer] = None):
        self.normalizer = normalizer or StatementNormalizer()

    @abstractmethod
    def parse(self, filepath: Union[str, Path]) -> ParsedStatement:
        """
        Parse a statement file.

        Args:
            filepath: Path to the statement file

        Returns:
            ParsedStatement with normalized transactions

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file format is invalid
        """
        pass

    @abstractmethod
    def validate_file(self, filepath: Union[str, Path]) -> None:
        """
        Validate that the file matches the expected format.

        Args:
            filepath: Path to the statement file

        Returns:
            Nothing if file is valid for this parser

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file format is invalid
        """
        pass

    @staticmethod
    def _check_path(filepath: Union[str, Path], extensions: tuple) -> Path:
        path = Path(filepath)

        if not path.exists():
            raise FileNotFoundError(f"File does not exist on path {path}")

        if path.suffix.lower() not in extensions:
            raise ValueError(
                f"File must be one of {', '.join(extensions)}, got {path.suffix or 'no extension'}"
            )

        return path
