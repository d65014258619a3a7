"""Разбор ответа модели на разделы бизнес‑плана."""
from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from bizgenius.schemas import FALLBACK_SECTION_TITLE, SECTION_CATALOG, Section
from bizgenius.services.normalize import normalize_text

_log = logging.getLogger(__name__)

_ORDINAL_RE = re.compile(r"^\d+\.")


def match_header(line: str, catalog: Sequence[str] = SECTION_CATALOG) -> Optional[str]:
    """Вернуть заголовок каталога, если строка выглядит как заголовок раздела.

    Строка считается заголовком, только если выполнены оба условия:
    - она содержит название из каталога (без учёта регистра);
    - она начинается с порядкового номера (`3.`) или целиком совпадает
      с названием.

    Упоминание раздела в обычном тексте заголовком не считается.
    """
    trimmed = line.strip()
    lower = trimmed.lower()
    numbered = bool(_ORDINAL_RE.match(trimmed))
    for title in catalog:
        t = title.lower()
        if t in lower and (numbered or lower == t):
            return title
    return None


def parse_sections(text: str, catalog: Sequence[str] = SECTION_CATALOG) -> List[Section]:
    """Разбить текст ответа модели на упорядоченный список разделов.

    Текст до первого распознанного заголовка отбрасывается. Повторный
    заголовок открывает новый раздел (дубликаты не сливаются). Если ни одного
    заголовка не найдено, возвращается один раздел `FALLBACK_SECTION_TITLE`
    со всем нормализованным текстом. Функция не бросает исключений.
    """
    clean = normalize_text(text)

    sections: List[Section] = []
    current_title: Optional[str] = None
    buf: List[str] = []

    def _flush() -> None:
        content = "".join(buf).strip()
        if current_title is not None and content:
            sections.append(Section(title=current_title, content=normalize_text(content)))

    for line in clean.split("\n"):
        title = match_header(line, catalog)
        if title is not None:
            _flush()
            current_title = title
            buf = []
        else:
            buf.append(line + "\n")
    _flush()

    if not sections:
        _log.debug("parser: no section headers found (text_len=%s), using fallback", len(clean))
        return [Section(title=FALLBACK_SECTION_TITLE, content=clean)]

    _log.debug(
        "parser: parsed %s sections (text_len=%s, titles=%s)",
        len(sections),
        len(clean),
        [s.title for s in sections],
    )
    return sections
