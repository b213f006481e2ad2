# io_excel.py — first-sheet spreadsheet reader and multi-sheet workbook writer

import logging
from io import BytesIO
from typing import Any, Dict, List, Mapping, Tuple

import pandas as pd
from openpyxl.styles import Font

logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class SpreadsheetError(RuntimeError):
    """Base class for spreadsheet I/O failures shown to the user."""


class SpreadsheetReadError(SpreadsheetError):
    pass


# ───────────────────────── Read (first sheet only) ─────────────────────────
def read_raw_first_sheet(upload) -> Tuple[pd.DataFrame, dict]:
    name = upload.name if hasattr(upload, "name") else "uploaded"
    suffix = name.lower().rsplit(".", 1)[-1] if "." in name else ""
    meta = {"source": name, "sheet_name": None}

    try:
        if suffix == "csv":
            df = pd.read_csv(upload, dtype=str, encoding="utf-8", low_memory=False)
        else:
            bio = BytesIO(upload.read())
            if suffix in {"xlsx", "xlsm"}:
                engine = "openpyxl"
            elif suffix == "xls":
                engine = "xlrd"
            else:
                engine = None  # let pandas sniff
            xls = pd.ExcelFile(bio, engine=engine)
            first = xls.sheet_names[0]
            meta["sheet_name"] = first
            df = xls.parse(first, dtype=str)
    except Exception as e:
        raise SpreadsheetReadError(f"Could not read '{name}'. Error: {e}") from e

    if df.empty:
        raise SpreadsheetReadError(f"'{name}' loaded but the first sheet is empty.")
    df.columns = [str(c).strip() for c in df.columns]
    meta["rows"] = int(len(df))
    logger.info("Read %d rows from %s (sheet: %s)", len(df), name, meta["sheet_name"] or "-")
    return df, meta


def load_rows(upload) -> Tuple[List[Dict[str, Any]], dict]:
    df, meta = read_raw_first_sheet(upload)
    return df.to_dict(orient="records"), meta


# ───────────────────────── Write ─────────────────────────
def build_excel_report(sheets: Mapping[str, Any]) -> bytes:
    """Write ReportSheet-like objects (``.frame``, ``.title``) into one workbook.

    A titled sheet gets the title in A1, a blank row, then the table.
    """
    bio = BytesIO()
    with pd.ExcelWriter(bio, engine="openpyxl") as w:
        for sheet_name, sheet in sheets.items():
            startrow = 2 if sheet.title else 0
            sheet.frame.to_excel(w, sheet_name=sheet_name[:31], index=False, startrow=startrow)
            ws = w.sheets[sheet_name[:31]]
            if sheet.title:
                ws.cell(row=1, column=1, value=sheet.title).font = Font(bold=True, size=13)
            for cell in ws[startrow + 1]:
                cell.font = Font(bold=True)
    bio.seek(0)
    logger.info("Built workbook with sheets: %s", ", ".join(sheets))
    return bio.getvalue()
