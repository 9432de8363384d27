"""Local configuration for dom_finder."""

from __future__ import annotations

import os


DEFAULT_HTML_PARSER = "lxml"
DEFAULT_FRAGMENT_PARSER = "html.parser"

# bs4 builder for whole documents handed to Finder.evaluate.
DOM_FINDER_HTML_PARSER = os.getenv("DOM_FINDER_HTML_PARSER", DEFAULT_HTML_PARSER)
# Fragments must not gain <html><body> wrappers, so html.parser by default.
DOM_FINDER_FRAGMENT_PARSER = os.getenv("DOM_FINDER_FRAGMENT_PARSER", DEFAULT_FRAGMENT_PARSER)

PATH_SEPARATOR = "."
PATH_ESCAPE = "\\"
LENGTH_MARKER = "#"
INDEX_FIELD = "index"
