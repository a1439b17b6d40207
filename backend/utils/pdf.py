# backend/utils/pdf.py
import io
import logging
from pathlib import Path

from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

# Optional TTF fonts for non-latin material names; Helvetica otherwise
FONT_DIR = Path("assets/fonts")
FONT_REGULAR_PATH = FONT_DIR / "DejaVuSans.ttf"
FONT_BOLD_PATH = FONT_DIR / "DejaVuSans-Bold.ttf"

FONT_REGULAR_NAME = "Helvetica"
FONT_BOLD_NAME = "Helvetica-Bold"

# (header, record key, x position in mm, alignment)
QUANTITY_COLUMNS = [
    ("Material", "material_name", 10, "left"),
    ("Unit", "unit", 70, "left"),
    ("Opening", "opening_stock", 100, "right"),
    ("Purchase", "purchase_in", 122, "right"),
    ("Transfer In", "transfer_in", 144, "right"),
    ("Production", "production_in", 166, "right"),
    ("Adj. In", "adjustment_in", 186, "right"),
    ("Transfer Out", "transfer_out", 208, "right"),
    ("Consumption", "consumption_out", 230, "right"),
    ("Adj. Out", "adjustment_out", 250, "right"),
    ("Closing", "closing_stock", 280, "right"),
]

_fonts_inited = False
def _init_fonts():
    """Registers DejaVu fonts in ReportLab when they are shipped with the app."""
    global _fonts_inited, FONT_REGULAR_NAME, FONT_BOLD_NAME
    if _fonts_inited:
        return
    _fonts_inited = True

    if not FONT_REGULAR_PATH.exists():
        logger.debug("Font file not found at %s, using Helvetica", FONT_REGULAR_PATH)
        return

    pdfmetrics.registerFont(TTFont("DejaVuSans", str(FONT_REGULAR_PATH)))
    FONT_REGULAR_NAME = "DejaVuSans"
    if FONT_BOLD_PATH.exists():
        pdfmetrics.registerFont(TTFont("DejaVuSans-Bold", str(FONT_BOLD_PATH)))
        FONT_BOLD_NAME = "DejaVuSans-Bold"
    else:
        FONT_BOLD_NAME = FONT_REGULAR_NAME


def _fmt(value) -> str:
    if isinstance(value, float):
        return f"{value:,.2f}"
    return "" if value is None else str(value)


def generate_stock_extract_pdf(report: dict) -> bytes:
    """
    Renders a stock extract (utils.stock_extract.build_stock_extract) as a landscape PDF:
    - header with period and report type
    - one table section per warehouse
    - amount lines under each row when the report carries amounts
    - summary footer
    """
    _init_fonts()

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=landscape(A4))
    width, height = landscape(A4)
    with_amounts = report.get("report_type") == "amount"

    def draw(x, y, text, font=None, size=8, align="left"):
        c.setFont(font or FONT_REGULAR_NAME, size)
        if align == "right":
            c.drawRightString(x, y, _fmt(text))
        else:
            c.drawString(x, y, _fmt(text))

    def draw_header_row(y):
        c.setFillColorRGB(0.93, 0.93, 0.93)
        c.rect(8 * mm, y - 2 * mm, width - 16 * mm, 7 * mm, fill=1, stroke=0)
        c.setFillColorRGB(0, 0, 0)
        for title, _key, x, align in QUANTITY_COLUMNS:
            draw(x * mm, y, title, font=FONT_BOLD_NAME, align=align)
        return y - 7 * mm

    def new_page():
        c.showPage()
        return draw_header_row(height - 15 * mm)

    # --- 1. HEADER ---
    period = report.get("period", {})
    y = height - 15 * mm
    draw(10 * mm, y, "Stock Extract", font=FONT_BOLD_NAME, size=14)
    draw(width - 10 * mm, y, f"{period.get('start_date')} - {period.get('end_date')}", size=10, align="right")
    y -= 6 * mm
    draw(10 * mm, y, f"Report type: {report.get('report_type', 'quantity')}", size=9)
    y -= 8 * mm

    # --- 2. TABLE PER WAREHOUSE ---
    current_warehouse = None
    for record in report.get("records", []):
        if record["warehouse_name"] != current_warehouse:
            current_warehouse = record["warehouse_name"]
            if y < 30 * mm:
                c.showPage()
                y = height - 15 * mm
            y -= 3 * mm
            draw(10 * mm, y, current_warehouse, font=FONT_BOLD_NAME, size=10)
            y -= 7 * mm
            y = draw_header_row(y)

        for _title, key, x, align in QUANTITY_COLUMNS:
            value = record.get(key)
            if key == "material_name":
                value = str(value)[:38]
            draw(x * mm, y, value, align=align)
        y -= 5 * mm

        if with_amounts:
            for _title, key, x, align in QUANTITY_COLUMNS[2:]:
                draw(x * mm, y, record.get(f"{key}_amount"), size=7, align=align)
            y -= 5 * mm

        c.setLineWidth(0.1)
        c.line(8 * mm, y + 3 * mm, width - 8 * mm, y + 3 * mm)

        if y < 20 * mm:
            y = new_page()

    # --- 3. SUMMARY ---
    summary = report.get("summary", {})
    if y < 25 * mm:
        c.showPage()
        y = height - 15 * mm
    y -= 6 * mm
    draw(10 * mm, y, (
        f"Materials: {summary.get('total_materials', 0)}   "
        f"Warehouses: {summary.get('total_warehouses', 0)}   "
        f"Records: {summary.get('total_records', 0)}"
    ), font=FONT_BOLD_NAME, size=9)

    c.showPage()
    c.save()
    return buffer.getvalue()
