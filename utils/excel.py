"""
Spreadsheet helpers (openpyxl): material list import, the import template and
tabular report exports.
"""

import re
import time
from datetime import date, datetime
from io import BytesIO
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from utils.errors import ValidationError

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADER_MAP = {
    "MALZEME_KODU": "material_code",
    "MALZEME_ADI": "material_name",
    "MIKTAR": "quantity",
    "BIRIM": "unit",
    "ACIKLAMA": "specifications",
    "KATEGORI": "category",
    "ONCELIK": "priority",
    "TERMIN_TARIHI": "deadline",
}
PRIORITIES = ("low", "normal", "high", "urgent")
DEFAULT_UNIT = "ADET"
DEFAULT_CATEGORY = "Genel"

TEMPLATE_HEADERS = [
    "MALZEME_KODU",
    "MALZEME_ADI",
    "MIKTAR",
    "BIRIM",
    "ACIKLAMA",
    "KATEGORI",
    "ONCELIK",
]
TEMPLATE_ROWS = [
    ["MAL001", "Steel sheet 3mm", 100, "KG", "Galvanised steel sheet", "Metal", "normal"],
    ["MAL002", "Screw M8x50", 500, "ADET", "Stainless steel screw", "Fasteners", "high"],
    ["MAL003", "Welding electrode", 50, "PAKET", "E7018 electrode", "Welding", "normal"],
    ["MAL004", "Primer paint", 25, "LT", "Anti-corrosion primer", "Chemicals", "low"],
    ["MAL005", "Machine oil", 200, "LT", "Hydraulic system oil", "Lubricants", "urgent"],
]
TEMPLATE_COLUMN_WIDTHS = [15, 30, 10, 10, 25, 15, 12]
INSTRUCTIONS = [
    "MATERIAL LIST TEMPLATE - INSTRUCTIONS",
    "",
    "REQUIRED COLUMNS:",
    "- MALZEME_ADI: full material name",
    "- MIKTAR: number greater than 0",
    "- BIRIM: KG, ADET, MT, LT, ...",
    "",
    "OPTIONAL COLUMNS:",
    "- MALZEME_KODU: generated when left empty",
    "- ACIKLAMA: technical specifications, notes",
    "- KATEGORI: Metal, Chemicals, Electrical, ...",
    "- ONCELIK: low, normal, high, urgent",
    "",
    "NOTES:",
    "- Do not change the first (header) row",
    "- Empty rows are skipped",
    "- Rows without a name or a positive quantity are ignored",
    "- Maximum file size: 10MB",
]

_HEADER_FONT = Font(bold=True)
_HEADER_FILL = PatternFill("solid", fgColor="CCCCCC")


def _field_for(header) -> str:
    text = str(header if header is not None else "").strip()
    return HEADER_MAP.get(text.upper()) or re.sub(r"[^a-z0-9]", "_", text.lower())


def _blank(cell) -> bool:
    return cell is None or (isinstance(cell, str) and not cell.strip())


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def _quantity(value) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(_text(value).replace(",", "."))
    except ValueError:
        return 0.0


def _deadline(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return _text(value) or None


def parse_items(source):
    """Reads the first sheet of an .xlsx workbook.

    Returns ``(items, summary)``; items carry the request-item shape plus the
    sheet row number. Raises ValidationError for an unreadable or empty file.
    """
    try:
        wb = load_workbook(source, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as exc:
        raise ValidationError("The file is not a readable .xlsx workbook.") from exc
    try:
        rows = list(wb.worksheets[0].iter_rows(values_only=True))
    finally:
        wb.close()

    if len(rows) < 2:
        raise ValidationError("The spreadsheet is empty or only has a header row.")

    headers = [_text(h) for h in rows[0]]
    fields = [_field_for(h) for h in rows[0]]
    stamp = int(time.time() * 1000)
    items = []
    data_rows = rows[1:]
    for offset, row in enumerate(data_rows):
        if all(_blank(cell) for cell in row):
            continue
        raw = {}
        for col, field in enumerate(fields):
            if field and col < len(row):
                raw[field] = row[col]

        priority = _text(raw.get("priority")).lower()
        item = {
            "row_number": offset + 2,
            "material_code": _text(raw.get("material_code")) or f"AUTO_{stamp}_{len(items)}",
            "material_name": _text(raw.get("material_name")),
            "quantity": _quantity(raw.get("quantity")),
            "unit": _text(raw.get("unit")) or DEFAULT_UNIT,
            "specifications": _text(raw.get("specifications")),
            "category": _text(raw.get("category")) or DEFAULT_CATEGORY,
            "priority": priority if priority in PRIORITIES else "normal",
            "deadline": _deadline(raw.get("deadline")),
        }
        if item["material_name"] and item["quantity"] > 0:
            items.append(item)

    summary = {
        "total_rows": len(data_rows),
        "valid_items": len(items),
        "headers": headers,
    }
    return items, summary


def _style_header(ws, widths=None):
    for cell in ws[1]:
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
    for idx, width in enumerate(widths or [], 1):
        ws.column_dimensions[get_column_letter(idx)].width = width


def _to_bytes(wb: Workbook) -> BytesIO:
    buf = BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


def template_workbook() -> BytesIO:
    wb = Workbook()
    ws = wb.active
    ws.title = "Malzeme_Listesi"
    ws.append(TEMPLATE_HEADERS)
    for row in TEMPLATE_ROWS:
        ws.append(row)
    _style_header(ws, TEMPLATE_COLUMN_WIDTHS)

    guide = wb.create_sheet("Kullanim_Kilavuzu")
    for line in INSTRUCTIONS:
        guide.append([line])
    guide.column_dimensions["A"].width = 60
    return _to_bytes(wb)


def export_workbook(sheet_title: str, headers, rows) -> BytesIO:
    """One sheet, bold header row, column widths sized to the content."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title[:31]
    ws.append(list(headers))
    widths = [len(str(h)) for h in headers]
    for row in rows:
        values = list(row)
        ws.append(values)
        for idx, value in enumerate(values):
            if idx < len(widths):
                widths[idx] = max(widths[idx], len(_text(value)))
    _style_header(ws, [min(w + 2, 50) for w in widths])
    return _to_bytes(wb)
