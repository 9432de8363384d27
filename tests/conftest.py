"""Test setup for dom_finder."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

FIXTURES = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture(scope="session")
def serp_html() -> str:
    """Search results page with 21 result blocks."""
    return (FIXTURES / "serp.html").read_text(encoding="utf-8")


@pytest.fixture(scope="session")
def nutrition_html() -> str:
    """Page with a fruit nutrition table."""
    return (FIXTURES / "nutrition.html").read_text(encoding="utf-8")


@pytest.fixture
def serp_schema() -> dict:
    """Schema extracting url, title and snippet of every search result."""
    return {
        "name": "root",
        "base_path": "html",
        "children": [
            {
                "name": "results",
                "base_path": "div.serp__results div.result",
                "many": True,
                "children": [
                    {
                        "name": "url",
                        "base_path": "h2.result__title > a[href]",
                        "extract": "href",
                    },
                    {
                        "name": "title",
                        "base_path": "h2.result__title",
                        "extract": "text",
                        "pipeline": [["normalize_spaces"]],
                    },
                    {
                        "name": "snippet",
                        "base_path": "a.result__snippet",
                        "extract": "html",
                        "sanitize_policy": "highlight",
                        "pipeline": [["normalize_spaces"]],
                    },
                ],
            }
        ],
    }
