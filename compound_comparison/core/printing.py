"""Printing helpers for CLI output."""

from __future__ import annotations

from typing import Optional, TextIO


def print_banner(title: str, width: int = 80, char: str = "=", file: Optional[TextIO] = None) -> None:
    print(char * width, file=file)
    print(title, file=file)
    print(char * width, file=file)


def print_section(title: str, width: int = 80, char: str = "-", file: Optional[TextIO] = None) -> None:
    print(title, file=file)
    print(char * min(width, max(len(title), 1)), file=file)
