"""
BLS OEWS spreadsheet extractor (xlsx / xls / csv)
"""

import pandas as pd
from typing import List, Dict, Any, Optional, Union
from pathlib import Path
from ingestion.base import DataSource
from ingestion.transformers.normalizer import ColumnAdapter, select_adapter
from core.exceptions import ResourceNotFoundError, SpreadsheetExtractionError
import logging

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv", ".txt"}


class SpreadsheetExtractor(DataSource):
    """
    Extract detailed-occupation rows from a BLS spreadsheet.

    Supports:
    - Excel workbooks (first sheet by default) and CSV exports
    - Column convention detection from the header
    - Group pre-filter ("detailed" rows only)
    - Row limit for dry runs, applied after the group filter
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        source_name: Optional[str] = None,
        sheet_name: Union[int, str] = 0,
        limit: Optional[int] = None
    ):
        self.file_path = Path(file_path)
        super().__init__(source_name=source_name or self.file_path.name)
        self.sheet_name = sheet_name
        self.limit = limit
        self.adapter: Optional[ColumnAdapter] = None
        self.rows_detailed = 0

    @property
    def location(self) -> Optional[str]:
        return str(self.file_path)

    def _read_frame(self) -> pd.DataFrame:
        suffix = self.file_path.suffix.lower()

        # Raw cell values only: no NA inference, so "*" and "" stay visible
        # to the normalizer and codes keep their leading zeros
        if suffix in EXCEL_SUFFIXES:
            return pd.read_excel(
                self.file_path,
                sheet_name=self.sheet_name,
                dtype=object,
                keep_default_na=False,
            )
        if suffix in CSV_SUFFIXES:
            return pd.read_csv(
                self.file_path,
                dtype=str,
                keep_default_na=False,
            )

        raise SpreadsheetExtractionError(
            f"Unsupported input file type: {suffix or '(none)'}",
            context={"file_path": str(self.file_path)}
        )

    async def fetch_data(self) -> List[Dict[str, Any]]:
        """
        Read the file and return detailed-occupation rows.

        Raises:
            ResourceNotFoundError: file does not exist
            SpreadsheetExtractionError: file cannot be parsed
            SchemaValidationError: header matches no column convention
        """
        if not self.file_path.exists():
            raise ResourceNotFoundError(
                f"Input file not found: {self.file_path}",
                context={"file_path": str(self.file_path)}
            )

        logger.info(f"Reading file: {self.file_path}")

        try:
            df = self._read_frame()
        except SpreadsheetExtractionError:
            raise
        except (ValueError, OSError, ImportError) as e:
            raise SpreadsheetExtractionError(
                "Failed to read input file",
                context={"file_path": str(self.file_path), "sheet_name": self.sheet_name},
                original_exception=e
            )

        # Strip header whitespace; case is significant for convention detection
        df.columns = [str(c).strip() for c in df.columns]

        self.adapter = select_adapter(df.columns)

        records = df.to_dict(orient="records")
        self.rows_read = len(records)
        logger.info(f"Total rows in file: {self.rows_read}")

        detailed = [r for r in records if self.adapter.is_detailed(r)]
        self.rows_detailed = len(detailed)

        if self.limit is not None:
            detailed = detailed[:self.limit]
            logger.info(f"Dry run: processing {len(detailed)} rows")
        else:
            logger.info(f"Detailed occupation rows: {self.rows_detailed}")

        return detailed
