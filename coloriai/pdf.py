"""PDF export of a saved report, laid out like the on-screen report page."""

import io
import logging
import re
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from xml.sax.saxutils import escape

import requests
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

logger = logging.getLogger("coloriai.pdf")

PDF_FILENAME = "ColoriAI_Report.pdf"
PAGE_BACKGROUND = colors.HexColor("#FCF2DF")
HEADER_BACKGROUND = colors.HexColor("#FEDCB6")
TEXT_COLOR = colors.HexColor("#3C3334")
FALLBACK_SWATCH = colors.HexColor("#CCCCCC")
SWATCHES_PER_ROW = 5

_HEX_RE = re.compile(r"^#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")


def _text(value: Any) -> str:
    # stored reports may carry nulls or numbers where strings are expected
    return str(value) if value is not None else ""


def swatch_color(hex_value: str) -> colors.Color:
    value = _text(hex_value).strip()
    if not _HEX_RE.match(value):
        return FALLBACK_SWATCH
    if len(value) == 4:
        value = "#" + "".join(c * 2 for c in value[1:])
    return colors.HexColor(value)


def fetch_image(url: str) -> bytes:
    r = requests.get(url, timeout=10)
    r.raise_for_status()
    return r.content


def build_styles() -> Dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    styles = {
        "Body": ParagraphStyle("Body", parent=base["BodyText"], fontName="Helvetica",
                               fontSize=10, leading=13, textColor=TEXT_COLOR),
    }
    styles["Small"] = ParagraphStyle("Small", parent=styles["Body"], fontSize=8, leading=10,
                                     alignment=TA_CENTER)
    styles["Title"] = ParagraphStyle("Title", parent=styles["Body"], fontName="Helvetica-Bold",
                                     fontSize=22, leading=28, alignment=TA_CENTER)
    styles["Subtitle"] = ParagraphStyle("Subtitle", parent=styles["Body"], fontSize=13,
                                        leading=17, alignment=TA_CENTER)
    styles["H2"] = ParagraphStyle("H2", parent=styles["Body"], fontName="Helvetica-Bold",
                                  fontSize=12, leading=15, spaceBefore=12, spaceAfter=6,
                                  alignment=TA_CENTER)
    styles["Season"] = ParagraphStyle("Season", parent=styles["Title"], fontSize=18, leading=22)
    return styles


def _paint_background(canvas, doc) -> None:
    canvas.saveState()
    width, height = doc.pagesize
    canvas.setFillColor(PAGE_BACKGROUND)
    canvas.rect(0, 0, width, height, stroke=0, fill=1)
    canvas.setFont("Helvetica", 8)
    canvas.setFillColor(colors.grey)
    canvas.drawRightString(width - doc.rightMargin, 10 * mm, f"Page {canvas.getPageNumber()}")
    canvas.restoreState()


def _swatch_table(items: List[Dict[str, Any]], label_key: str, styles) -> Table:
    rows: List[List[Any]] = []
    style_cmds: List[Any] = [
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
    ncols = min(len(items), SWATCHES_PER_ROW)
    for start in range(0, len(items), SWATCHES_PER_ROW):
        chunk = items[start:start + SWATCHES_PER_ROW]
        pad = [""] * (ncols - len(chunk))
        color_row_idx = len(rows)
        rows.append(["" for _ in chunk] + pad)
        rows.append([
            Paragraph(f"{escape(_text(it.get(label_key)))}<br/>{escape(_text(it.get('hex')))}",
                      styles["Small"])
            for it in chunk
        ] + pad)
        for col, it in enumerate(chunk):
            style_cmds.append(("BACKGROUND", (col, color_row_idx), (col, color_row_idx),
                               swatch_color(it.get("hex", ""))))
    table = Table(rows, colWidths=[30 * mm] * ncols,
                  rowHeights=[14 * mm if i % 2 == 0 else None for i in range(len(rows))])
    table.setStyle(TableStyle(style_cmds))
    return table


def _product_table(title: str, products: List[Dict[str, Any]], styles) -> List[Any]:
    products = [p for p in products if p and p.get("brand")]
    if not products:
        return []
    rows = [["", "Brand", "Product", "Shade", ""]]
    style_cmds: List[Any] = [
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("LINEBELOW", (0, 0), (-1, 0), 0.5, TEXT_COLOR),
    ]
    for i, p in enumerate(products, start=1):
        link = ""
        if p.get("url"):
            href = escape(_text(p["url"]), {'"': "&quot;"})
            link = Paragraph(f'<link href="{href}" color="blue">Shop</link>', styles["Small"])
        rows.append([
            "",
            Paragraph(escape(_text(p.get("brand"))), styles["Body"]),
            Paragraph(escape(_text(p.get("product"))), styles["Body"]),
            Paragraph(f"{escape(_text(p.get('shade')))} {escape(_text(p.get('hex')))}", styles["Body"]),
            link,
        ])
        style_cmds.append(("BACKGROUND", (0, i), (0, i), swatch_color(p.get("hex"))))
    table = Table(rows, colWidths=[8 * mm, 35 * mm, 60 * mm, 45 * mm, 18 * mm])
    table.setStyle(TableStyle(style_cmds))
    return [Paragraph(escape(title), styles["H2"]), table]


def _outfit_image(url: str, fetcher: Callable[[str], bytes]) -> Optional[Image]:
    try:
        img = Image(io.BytesIO(fetcher(url)))
        max_w, max_h = 90 * mm, 140 * mm
        scale = min(max_w / img.imageWidth, max_h / img.imageHeight, 1.0)
        img.drawWidth = img.imageWidth * scale
        img.drawHeight = img.imageHeight * scale
    except Exception as e:
        logger.warning("Could not load outfit image %s: %s", url, e)
        return None
    return img


def render_report_pdf(
    report: Dict[str, Any],
    user_name: str = "User",
    fetcher: Callable[[str], bytes] = fetch_image,
) -> bytes:
    styles = build_styles()
    result = report.get("result") or {}
    makeup = result.get("makeup") or {}
    created = report.get("createdAt")

    story: List[Any] = []
    header = Table(
        [[Paragraph("ColoriAI", styles["Title"])],
         [Paragraph("Seasonal Color Report", styles["Subtitle"])]],
        colWidths=[170 * mm],
    )
    header.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), HEADER_BACKGROUND),
        ("TOPPADDING", (0, 0), (-1, -1), 8),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
    ]))
    story.append(header)
    story.append(Spacer(1, 6 * mm))

    meta = f"<b>User:</b> {escape(user_name or 'User')}"
    if isinstance(created, datetime):
        meta += f"&nbsp;&nbsp;&nbsp;<b>Date:</b> {created.strftime('%Y-%m-%d')}"
    story.append(Paragraph(meta, styles["Subtitle"]))

    if result.get("colorExtraction"):
        story.append(Paragraph("COLOR EXTRACTION", styles["H2"]))
        story.append(_swatch_table(result["colorExtraction"], "label", styles))

    story.append(Paragraph("Seasonal Color Type:", styles["H2"]))
    story.append(Paragraph(escape(_text(result.get("seasonType")) or "Unknown"), styles["Season"]))

    if result.get("colorPalette"):
        story.append(Paragraph("SEASONAL PALETTE", styles["H2"]))
        story.append(_swatch_table(result["colorPalette"], "name", styles))

    jewelry = result.get("jewelryTone") or {}
    if jewelry.get("name"):
        story.append(Paragraph("JEWELRY TONE", styles["H2"]))
        story.append(_swatch_table([jewelry], "name", styles))

    if result.get("hairColors"):
        story.append(Paragraph("HAIR COLORS", styles["H2"]))
        story.append(_swatch_table(result["hairColors"], "name", styles))

    story.extend(_product_table("FOUNDATIONS", makeup.get("foundations") or [], styles))
    story.extend(_product_table("KOREAN CUSHION", [makeup.get("cushion") or {}], styles))
    story.extend(_product_table("LIPSTICKS", makeup.get("lipsticks") or [], styles))
    story.extend(_product_table("BLUSHES", makeup.get("blushes") or [], styles))
    story.extend(_product_table("EYESHADOW PALETTES", makeup.get("eyeshadows") or [], styles))

    if result.get("celebrities"):
        story.append(Paragraph("SIMILAR CELEBRITIES", styles["H2"]))
        story.append(Paragraph(escape(", ".join(_text(c) for c in result["celebrities"])), styles["Subtitle"]))

    outfit = result.get("outfit") or {}
    image_url = report.get("outfitImage") or outfit.get("generatedImage")
    if image_url:
        story.append(Paragraph(f"{escape(_text(outfit.get('styleType')) or 'Casual').upper()} OUTFIT", styles["H2"]))
        img = _outfit_image(image_url, fetcher)
        if img is not None:
            story.append(img)

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=15 * mm,
        bottomMargin=18 * mm,
        title="ColoriAI Seasonal Color Report",
        author="ColoriAI",
    )
    doc.build(story, onFirstPage=_paint_background, onLaterPages=_paint_background)
    return buf.getvalue()
