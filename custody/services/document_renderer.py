"""
Rendu PDF du bon de remise / Handover receipt PDF rendering.

Fonction pure : charge utile -> octets PDF, sans acces base ni stockage.
Pure function: payload -> PDF bytes, no database or storage access.
"""

import io
import logging
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from custody.services.receipt_service import HandoverDocumentPayload

logger = logging.getLogger(__name__)

MARGIN = 15 * mm
SIGNATURE_MAX_WIDTH = 60 * mm
SIGNATURE_MAX_HEIGHT = 25 * mm
NO_DATA = "No data"
NO_SIGNATURE = "No digital signature"

_styles = getSampleStyleSheet()
TITLE = ParagraphStyle("ReceiptTitle", parent=_styles["Title"], fontSize=16, spaceAfter=6)
HEADING = ParagraphStyle("ReceiptHeading", parent=_styles["Heading3"], spaceBefore=8, spaceAfter=4)
BODY = ParagraphStyle("ReceiptBody", parent=_styles["BodyText"], fontSize=9, leading=11)
CELL = ParagraphStyle("ReceiptCell", parent=BODY, fontSize=7, leading=9)
HEADER_CELL = ParagraphStyle("ReceiptHeaderCell", parent=CELL, fontName="Helvetica-Bold")
PLACEHOLDER = ParagraphStyle("ReceiptPlaceholder", parent=CELL, textColor=colors.grey, alignment=TA_CENTER)

GENERAL_COLUMNS = [("#", 10), ("Item", 130), ("Quantity", 40)]
PDA_COLUMNS = [
    ("#", 8), ("Asset tag", 22), ("Qty", 12), ("Type", 20), ("Custom flags", 30),
    ("Condition", 30), ("SIM card", 20), ("Phone number", 20), ("Description", 18),
]
PRINTER_COLUMNS = [
    ("#", 8), ("Asset tag", 25), ("Qty", 12), ("Type", 25), ("Custom flags", 40),
    ("Condition", 40), ("Description", 30),
]


def _text(value: str | None, style: ParagraphStyle = CELL) -> Paragraph:
    """Paragraphe avec texte utilisateur echappe / Paragraph with escaped user text."""
    return Paragraph(escape(value or "").replace("\n", "<br/>"), style)


def _table(columns: list[tuple[str, int]], rows: list[list[str]]) -> Table:
    """Tableau avec en-tete ; liste vide => ligne "No data" / Table with header; empty => "No data" row."""
    data = [[_text(label, HEADER_CELL) for label, _ in columns]]
    style = [
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#eeeeee")),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]
    if rows:
        for index, row in enumerate(rows, 1):
            data.append([_text(str(index))] + [_text(cell) for cell in row])
    else:
        data.append([_text(NO_DATA, PLACEHOLDER)] + [""] * (len(columns) - 1))
        style.append(("SPAN", (0, 1), (-1, 1)))
    table = Table(data, colWidths=[width * mm for _, width in columns], repeatRows=1)
    table.setStyle(TableStyle(style))
    return table


def _signature(data: bytes | None):
    """Image de signature ou mention "No digital signature" / Signature image or placeholder."""
    if not data:
        return _text(NO_SIGNATURE, PLACEHOLDER)
    try:
        width, height = ImageReader(io.BytesIO(data)).getSize()
    except (OSError, ValueError):
        logger.warning("Unreadable signature image (%d bytes), rendering placeholder", len(data))
        return _text(NO_SIGNATURE, PLACEHOLDER)
    scale = min(SIGNATURE_MAX_WIDTH / width, SIGNATURE_MAX_HEIGHT / height, 1.0)
    return Image(io.BytesIO(data), width=width * scale, height=height * scale)


def render_handover_document(payload: HandoverDocumentPayload) -> bytes:
    """Generer le PDF du bon de remise / Render the handover receipt PDF."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        title=payload.title,
    )

    meta = Table(
        [
            [_text("Date", HEADER_CELL), _text(payload.date, BODY)],
            [_text("Location", HEADER_CELL), _text(payload.location, BODY)],
            [_text(payload.giver_label, HEADER_CELL), _text(payload.giver_name, BODY)],
            [_text(payload.receiver_label, HEADER_CELL), _text(payload.receiver_name, BODY)],
        ],
        colWidths=[40 * mm, 140 * mm],
    )

    story = [
        _text(payload.title, TITLE),
        meta,
        Spacer(1, 4 * mm),
        _text("Items", HEADING),
        _table(GENERAL_COLUMNS, [[item.name, item.quantity] for item in payload.general_items]),
        _text("PDA devices", HEADING),
        _table(PDA_COLUMNS, [
            [item.name, item.quantity, item.type, item.custom_flags, item.system_flags,
             item.sim_card_id, item.phone_number, item.description]
            for item in payload.pda_items
        ]),
        _text("Mobile printers", HEADING),
        _table(PRINTER_COLUMNS, [
            [item.name, item.quantity, item.type, item.custom_flags, item.system_flags, item.description]
            for item in payload.printer_items
        ]),
        _text("Notes", HEADING),
        _text(payload.notes or "-", BODY),
        Spacer(1, 8 * mm),
    ]

    signatures = Table(
        [
            [_text(payload.giver_label, HEADER_CELL), _text(payload.receiver_label, HEADER_CELL)],
            [_signature(payload.giver_signature), _signature(payload.receiver_signature)],
            [_text(payload.giver_name, BODY), _text(payload.receiver_name, BODY)],
        ],
        colWidths=[90 * mm, 90 * mm],
    )
    signatures.setStyle(TableStyle([
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("LINEBELOW", (0, 1), (-1, 1), 0.5, colors.black),
    ]))
    story.append(signatures)

    doc.build(story)
    return buffer.getvalue()
