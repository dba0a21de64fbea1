"""
Low-level PDF utilities for the referral and consent templates.

Filling goes through PyMuPDF widgets so text boxes, checkboxes and signature
images can be handled in one pass before the form is flattened. Merging only
concatenates pages and is done with pypdf.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Sequence, Union

import fitz  # PyMuPDF
from pypdf import PdfReader, PdfWriter

from .errors import MalformedDocument
from .field_mapper import FieldTriple

logger = logging.getLogger(__name__)

TEXT_FONT_SIZE = 11
SIGNATURE_PADDING = 2

_TEXT_WIDGETS = {fitz.PDF_WIDGET_TYPE_TEXT, fitz.PDF_WIDGET_TYPE_COMBOBOX}
_TOGGLE_WIDGETS = {fitz.PDF_WIDGET_TYPE_CHECKBOX, fitz.PDF_WIDGET_TYPE_RADIOBUTTON}


def fill_pdf_template(
    template: Union[Path, bytes],
    triples: Iterable[FieldTriple],
    signatures: Optional[Mapping[Sequence[str], bytes]] = None,
    flatten: bool = True,
    font_size: Optional[float] = TEXT_FONT_SIZE,
) -> bytes:
    """
    Fill a fillable PDF and return the serialized bytes.

    Args:
        template: Path to the template, or its raw bytes.
        triples: Field values; the last triple for a name wins. Names the
            template does not have are ignored.
        signatures: Candidate signature field names -> PNG bytes. The first
            candidate present in the form receives the image.
        flatten: Bake all form fields into page content.
        font_size: Font size applied to filled text boxes (None keeps the
            template's setting).
    """
    values: Dict[str, FieldTriple] = {}
    for triple in triples:
        values[triple.name] = triple

    doc = _open_document(template)
    try:
        filled = _apply_values(doc, values, font_size)
        logger.info("Filled %d of %d mapped fields", filled, len(values))

        for field_names, image in (signatures or {}).items():
            if image and not draw_signature(doc, field_names, image):
                logger.warning("Signature field %s not found in template", list(field_names))

        if flatten:
            doc.bake()
        return doc.tobytes(garbage=3, deflate=True)
    finally:
        doc.close()


def _open_document(template: Union[Path, bytes]) -> fitz.Document:
    try:
        if isinstance(template, (bytes, bytearray)):
            return fitz.open(stream=bytes(template), filetype="pdf")
        return fitz.open(str(template))
    except Exception as exc:
        raise MalformedDocument(f"Could not open PDF template: {exc}") from exc


def _apply_values(doc: fitz.Document, values: Mapping[str, FieldTriple], font_size: Optional[float]) -> int:
    filled = 0
    for page in doc:
        for widget in page.widgets():
            triple = values.get(widget.field_name)
            if triple is None:
                continue
            if widget.field_type in _TEXT_WIDGETS and triple.is_text:
                widget.field_value = str(triple.value)
                if font_size:
                    widget.text_fontsize = font_size
            elif widget.field_type in _TOGGLE_WIDGETS and not triple.is_text:
                widget.field_value = (widget.on_state() or True) if triple.value else "Off"
            else:
                logger.debug(
                    "Skipping %s: %s value on %s widget",
                    widget.field_name, triple.kind.value, widget.field_type_string,
                )
                continue
            widget.update()
            filled += 1
    return filled


# ----------------------------------------------------------------------
# Signatures
# ----------------------------------------------------------------------
def decode_data_url(value) -> Optional[bytes]:
    """Decode a `data:image/png;base64,...` string; None when not decodable."""
    if not value or not isinstance(value, str):
        return None
    idx = value.find(",")
    if idx == -1:
        return None
    try:
        data = base64.b64decode(value[idx + 1:], validate=False)
    except (binascii.Error, ValueError):
        return None
    return data or None


def fit_image_rect(rect: fitz.Rect, image_width: float, image_height: float, pad: float = SIGNATURE_PADDING) -> fitz.Rect:
    """Largest aspect-preserving rect for the image inside `rect` minus padding, centered."""
    target_w = max(0.0, rect.width - pad * 2)
    target_h = max(0.0, rect.height - pad * 2)
    if image_width <= 0 or image_height <= 0:
        return fitz.Rect(rect.x0, rect.y0, rect.x0, rect.y0)
    scale = min(target_w / image_width, target_h / image_height)
    draw_w = image_width * scale
    draw_h = image_height * scale
    x0 = rect.x0 + (rect.width - draw_w) / 2
    y0 = rect.y0 + (rect.height - draw_h) / 2
    return fitz.Rect(x0, y0, x0 + draw_w, y0 + draw_h)


def draw_signature(doc: fitz.Document, field_names: Sequence[str], png_bytes: bytes, pad: float = SIGNATURE_PADDING) -> bool:
    """
    Draw `png_bytes` into every placement of the first field in `field_names`
    that exists in the document. Returns False when nothing was drawn.
    """
    try:
        pixmap = fitz.Pixmap(png_bytes)
        width, height = pixmap.width, pixmap.height
    except Exception as exc:
        logger.warning("Ignoring undecodable signature image: %s", exc)
        return False

    for name in field_names:
        placements = [
            (page, widget.rect)
            for page in doc
            for widget in page.widgets()
            if widget.field_name == name
        ]
        if not placements:
            continue
        for page, rect in placements:
            target = fit_image_rect(rect, width, height, pad)
            if target.is_empty:
                continue
            page.insert_image(target, stream=png_bytes, keep_proportion=True)
        return True
    return False


# ----------------------------------------------------------------------
# Merge
# ----------------------------------------------------------------------
def _read_pdf(data: bytes, label: str) -> PdfReader:
    try:
        reader = PdfReader(io.BytesIO(data), strict=False)
        page_count = len(reader.pages)
    except Exception as exc:
        raise MalformedDocument(f"Could not parse {label} PDF: {exc}") from exc
    if page_count == 0:
        raise MalformedDocument(f"{label} PDF has no pages")
    return reader


def merge_pdfs(first: bytes, second: bytes) -> bytes:
    """Concatenate all pages of `first`, then all pages of `second`."""
    readers = [_read_pdf(first, "first"), _read_pdf(second, "second")]

    writer = PdfWriter()
    for reader in readers:
        for page in reader.pages:
            writer.add_page(page)

    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def count_pages(data: bytes) -> int:
    return len(_read_pdf(data, "input").pages)
