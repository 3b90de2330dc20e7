"""
Transform raw BLS spreadsheet rows into typed SalaryRecord models.

Two column-name conventions exist in the wild (the uppercase BLS headers
and a lowercase variant). A ColumnAdapter is selected once per file from
its header so the rest of the pipeline only sees SalaryRecord.
"""

import math
from abc import ABC
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type
from pydantic import ValidationError as PydanticValidationError
from schemas.normalized import SalaryRecord
from core.exceptions import NormalizationError, SchemaValidationError
import logging

logger = logging.getLogger(__name__)

# BLS suppression / confidentiality codes
MISSING_SENTINELS = {"", "*", "**", "#"}

DETAILED_GROUP = "detailed"


def parse_numeric(value: Any) -> Optional[float]:
    """
    Parse a numeric cell, returning None for anything that is not a number.

    Empty cells and the BLS sentinels map to None (never 0). Thousands
    separators are stripped before parsing.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    text = str(value).strip()
    if text in MISSING_SENTINELS:
        return None
    try:
        number = float(text.replace(",", ""))
    except (ValueError, TypeError):
        return None
    return number if math.isfinite(number) else None


def parse_text(value: Any) -> Optional[str]:
    """Parse a code/title cell to a trimmed string, None when empty"""
    if value is None:
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer():
            value = int(value)
    text = str(value).strip()
    return text or None


class ColumnAdapter(ABC):
    """
    Maps one spreadsheet naming convention onto the record fields.

    Subclasses declare COLUMNS: field name -> candidate column names, tried
    in order.
    """

    name: str = "base"
    COLUMNS: Dict[str, Tuple[str, ...]] = {}
    REQUIRED_HEADERS: Tuple[str, ...] = ()

    def _cell(self, row: Dict[str, Any], field: str) -> Any:
        for column in self.COLUMNS[field]:
            value = row.get(column)
            if parse_text(value) is not None:
                return value
        return None

    @classmethod
    def matches(cls, columns: Iterable[str]) -> bool:
        header = set(columns)
        return all(column in header for column in cls.REQUIRED_HEADERS)

    # Identity fields
    def occ_code(self, row: Dict[str, Any]) -> Optional[str]:
        return parse_text(self._cell(row, "occ_code"))

    def occ_title(self, row: Dict[str, Any]) -> Optional[str]:
        return parse_text(self._cell(row, "occ_title"))

    def occ_group(self, row: Dict[str, Any]) -> Optional[str]:
        return parse_text(self._cell(row, "occ_group"))

    def area_code(self, row: Dict[str, Any]) -> Optional[str]:
        return parse_text(self._cell(row, "area_code"))

    def area_title(self, row: Dict[str, Any]) -> Optional[str]:
        return parse_text(self._cell(row, "area_title"))

    def is_detailed(self, row: Dict[str, Any]) -> bool:
        """Group filter, applied by the extractor before normalization"""
        return self.occ_group(row) == DETAILED_GROUP

    # Measures
    def tot_emp(self, row: Dict[str, Any]) -> Optional[float]:
        return parse_numeric(self._cell(row, "tot_emp"))

    def h_mean(self, row: Dict[str, Any]) -> Optional[float]:
        return parse_numeric(self._cell(row, "h_mean"))

    def a_mean(self, row: Dict[str, Any]) -> Optional[float]:
        return parse_numeric(self._cell(row, "a_mean"))

    def a_median(self, row: Dict[str, Any]) -> Optional[float]:
        return parse_numeric(self._cell(row, "a_median"))

    def a_pct10(self, row: Dict[str, Any]) -> Optional[float]:
        return parse_numeric(self._cell(row, "a_pct10"))

    def a_pct25(self, row: Dict[str, Any]) -> Optional[float]:
        return parse_numeric(self._cell(row, "a_pct25"))

    def a_pct75(self, row: Dict[str, Any]) -> Optional[float]:
        return parse_numeric(self._cell(row, "a_pct75"))

    def a_pct90(self, row: Dict[str, Any]) -> Optional[float]:
        return parse_numeric(self._cell(row, "a_pct90"))


class UppercaseColumns(ColumnAdapter):
    """Official BLS headers (OCC_CODE, AREA_TITLE, A_MEDIAN, ...)"""

    name = "uppercase"
    REQUIRED_HEADERS = ("OCC_CODE",)
    COLUMNS = {
        "occ_code": ("OCC_CODE",),
        "occ_title": ("OCC_TITLE",),
        "occ_group": ("OCC_GROUP", "O_GROUP"),
        "area_code": ("AREA", "AREA_CODE"),
        "area_title": ("AREA_TITLE", "AREA_NAME"),
        "tot_emp": ("TOT_EMP",),
        "h_mean": ("H_MEAN",),
        "a_mean": ("A_MEAN",),
        "a_median": ("A_MEDIAN",),
        "a_pct10": ("A_PCT10",),
        "a_pct25": ("A_PCT25",),
        "a_pct75": ("A_PCT75",),
        "a_pct90": ("A_PCT90",),
    }


class LowercaseColumns(ColumnAdapter):
    """Lowercase variant found in some re-exports of the BLS files"""

    name = "lowercase"
    REQUIRED_HEADERS = ("occ_code",)
    COLUMNS = {
        "occ_code": ("occ_code",),
        "occ_title": ("occ_title",),
        "occ_group": ("occ_group", "o_group"),
        "area_code": ("area", "area_code"),
        "area_title": ("area_title", "area_name"),
        "tot_emp": ("tot_emp",),
        "h_mean": ("h_mean",),
        "a_mean": ("a_mean",),
        "a_median": ("a_median",),
        "a_pct10": ("a_pct10",),
        "a_pct25": ("a_pct25",),
        "a_pct75": ("a_pct75",),
        "a_pct90": ("a_pct90",),
    }


ADAPTERS: List[Type[ColumnAdapter]] = [UppercaseColumns, LowercaseColumns]


def select_adapter(columns: Iterable[str]) -> ColumnAdapter:
    """Pick the column adapter for a file header"""
    columns = [str(c).strip() for c in columns]
    for adapter_cls in ADAPTERS:
        if adapter_cls.matches(columns):
            logger.info(f"Using {adapter_cls.name} column convention")
            return adapter_cls()

    raise SchemaValidationError(
        "Spreadsheet header matches no known column convention",
        context={
            "columns": columns[:20],
            "validation_rule": "OCC_CODE or occ_code column required",
        }
    )


class RecordNormalizer:
    """
    Normalize raw spreadsheet rows into SalaryRecord.

    Handles:
    - Column-convention mapping (via the adapter)
    - BLS sentinel codes for missing values
    - Row admission (both source codes required)
    """

    def __init__(self, adapter: ColumnAdapter):
        self.adapter = adapter

    def normalize(self, row: Dict[str, Any], row_index: Optional[int] = None) -> Optional[SalaryRecord]:
        """
        Normalize one raw row.

        Returns:
            SalaryRecord, or None when the row lacks an occupation code or an
            area code (routine rejection, not an error)

        Raises:
            NormalizationError: row has both codes but cannot be validated
        """
        a = self.adapter
        occ_code = a.occ_code(row)
        area_code = a.area_code(row)

        if not occ_code or not area_code:
            return None

        try:
            return SalaryRecord(
                occ_code=occ_code,
                occ_title=a.occ_title(row),
                occ_group=a.occ_group(row) or DETAILED_GROUP,
                area_code=area_code,
                area_title=a.area_title(row),
                tot_emp=a.tot_emp(row),
                h_mean=a.h_mean(row),
                a_mean=a.a_mean(row),
                a_median=a.a_median(row),
                a_pct10=a.a_pct10(row),
                a_pct25=a.a_pct25(row),
                a_pct75=a.a_pct75(row),
                a_pct90=a.a_pct90(row),
            )
        except PydanticValidationError as e:
            raise NormalizationError(
                "Row failed validation",
                context={
                    "row_index": row_index,
                    "occ_code": occ_code,
                    "area_code": area_code,
                    "field_errors": {
                        ".".join(str(p) for p in err["loc"]): err["msg"] for err in e.errors()
                    },
                },
                original_exception=e,
            )
