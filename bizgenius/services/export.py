"""Экспорт бизнес‑плана: плоский текст (.txt) и документ Word (.docx)."""
from __future__ import annotations

import re
from io import BytesIO

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

from bizgenius.schemas import GeneratedDocument, Section
from bizgenius.services.normalize import BULLET

TXT_MEDIA_TYPE = "text/plain; charset=utf-8"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_RULE_WIDTH = 50
_WS_RE = re.compile(r"\s+")


def export_filename(document: GeneratedDocument, ext: str) -> str:
    """`Acme Co Business Plan` → `Acme_Co_Business_Plan.<ext>`."""
    stem = _WS_RE.sub("_", document.title.strip()) or "business_plan"
    return f"{stem}.{ext.lstrip('.')}"


def export_text(document: GeneratedDocument) -> str:
    """Плоский текст: шапка, линия из `=`, затем разделы с подчёркиванием `-`."""
    out = f"{document.title}\n"
    out += f"Industry: {document.industry}\n"
    out += f"Created: {document.created_at.strftime('%Y-%m-%d')}\n\n"
    out += "=" * _RULE_WIDTH + "\n\n"
    for section in document.sections:
        out += f"{section.title}\n"
        out += "-" * len(section.title) + "\n\n"
        out += f"{section.content}\n\n"
    return out


def _add_section(doc: Document, section: Section) -> None:
    """
    Раздел выводится заголовком первого уровня и абзацами:
    • строки с маркером `•` выводятся стилем `List Bullet` (без самого маркера),
    • пустые строки разделяют абзацы и в документ не попадают.
    """
    doc.add_heading(section.title, level=1)
    for line in section.content.split("\n"):
        text = line.strip()
        if not text:
            continue
        if text.startswith(BULLET):
            p = doc.add_paragraph(text[len(BULLET):].strip(), style="List Bullet")
            p.paragraph_format.space_after = Pt(0)
        else:
            doc.add_paragraph(text)


def export_docx(document: GeneratedDocument) -> bytes:
    """Сформировать .docx с планом и вернуть байты."""
    doc = Document()

    title = doc.add_heading(document.title, level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    meta = doc.add_paragraph(
        f"Industry: {document.industry} · Created: {document.created_at.strftime('%Y-%m-%d')}"
    )
    meta.alignment = WD_ALIGN_PARAGRAPH.CENTER

    for section in document.sections:
        _add_section(doc, section)

    bio = BytesIO()
    doc.save(bio)
    return bio.getvalue()
