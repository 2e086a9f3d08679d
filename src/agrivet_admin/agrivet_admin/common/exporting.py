"""Tabular downloads (CSV / Excel) built with pandas."""

from __future__ import annotations

import csv
import io
from typing import Iterable, Mapping, Optional, Sequence

import pandas as pd

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MIMETYPE = "text/csv"


def rows_to_frame(rows: Iterable[Mapping], columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Build a DataFrame keeping the header even when there are no rows."""
    data = [dict(r) for r in rows]
    if columns is None:
        return pd.DataFrame(data)
    return pd.DataFrame(data, columns=list(columns))


def to_xlsx(rows: Iterable[Mapping], *, sheet_name: str, columns: Optional[Sequence[str]] = None) -> io.BytesIO:
    df = rows_to_frame(rows, columns)

    # Written in memory, never to disk
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name[:31])

    output.seek(0)
    return output


def to_csv(rows: Iterable[Mapping], *, columns: Optional[Sequence[str]] = None) -> io.BytesIO:
    df = rows_to_frame(rows, columns)
    text = df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
    # BOM so spreadsheet apps detect UTF-8 (peso sign, accented names)
    return io.BytesIO(text.encode("utf-8-sig"))
