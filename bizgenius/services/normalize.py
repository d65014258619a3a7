"""Нормализация текста ответа модели: убираем markdown‑разметку, приводим
маркеры списков и пустые строки к единому виду.

Все функции чистые; `normalize_text` идемпотентна.
"""
from __future__ import annotations

import re

BULLET = "•"

# `[^\S\n]` is any whitespace except the line break (NBSP, em space, tabs, ...),
# the same set `str.strip()` removes
_STAR_BULLET_RE = re.compile(r"^[^\S\n]*\*[^\S\n]+", re.MULTILINE)
_HEADER_MARKER_RE = re.compile(r"^[^\S\n]*(?:#{1,6}[^\S\n]+)+", re.MULTILINE)
_BULLET_RE = re.compile(r"^[^\S\n]*[-+•][^\S\n]", re.MULTILINE)
_LINE_INDENT_RE = re.compile(r"^[^\S\n]+", re.MULTILINE)
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def strip_emphasis(text: str) -> str:
    """Удалить маркеры выделения (`**жирный**`, `*курсив*`).

    Строки‑списки вида `* пункт` предварительно превращаются в `• пункт`,
    чтобы маркер списка не потерялся вместе со звёздочками.
    """
    text = _STAR_BULLET_RE.sub(f"{BULLET} ", text)
    return text.replace("*", "")


def strip_header_markers(text: str) -> str:
    """Удалить markdown‑маркеры заголовков (`#`…`######`) в начале строк."""
    return _HEADER_MARKER_RE.sub("", text)


def normalize_bullets(text: str) -> str:
    """Привести маркеры списков (`-`, `+`, `•`) к `• `."""
    return _BULLET_RE.sub(f"{BULLET} ", text)


def strip_line_indent(text: str) -> str:
    return _LINE_INDENT_RE.sub("", text)


def collapse_blank_lines(text: str) -> str:
    """Свернуть три и более перевода строки подряд в ровно два."""
    return _BLANK_LINES_RE.sub("\n\n", text)


def normalize_text(text: str) -> str:
    """Полная нормализация текста ответа модели.

    Порядок шагов важен: отступы снимаются до схлопывания пустых строк, иначе
    строки из одних пробелов не считались бы пустыми.
    """
    text = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    text = strip_emphasis(text)
    text = strip_header_markers(text)
    text = normalize_bullets(text)
    text = strip_line_indent(text)
    text = collapse_blank_lines(text)
    return text.strip()
