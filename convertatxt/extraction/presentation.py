from __future__ import annotations

import re
from io import BytesIO
from xml.etree import ElementTree
from zipfile import BadZipFile, ZipFile

from convertatxt.extraction.types import ExtractionError, FormatTag
from convertatxt.utils.files import is_ole_container

_SLIDE_PART_RE = re.compile(r"^ppt/slides/slide(\d+)\.xml$")
_TEXT_RUN_TAG = "{http://schemas.openxmlformats.org/drawingml/2006/main}t"


def extract_presentation(data: bytes) -> str:
    """Extract the text runs of every slide, ordered by slide number."""

    if is_ole_container(data):
        msg = "legacy binary .ppt presentations are not supported, save as .pptx"
        raise ExtractionError(FormatTag.PRESENTATION, msg)
    try:
        with ZipFile(BytesIO(data)) as package:
            slides: list[tuple[int, str]] = []
            for name in package.namelist():
                match = _SLIDE_PART_RE.match(name)
                if match:
                    slides.append((int(match.group(1)), name))
            slides.sort()
            if not slides:
                raise ExtractionError(FormatTag.PRESENTATION, "no slides found")
            chunks = [
                f"Slide {number}\n{_slide_text(package.read(name))}\n\n"
                for number, name in slides
            ]
    except BadZipFile as error:
        raise ExtractionError(FormatTag.PRESENTATION, f"unreadable presentation: {error}") from error
    return "".join(chunks)


def _slide_text(xml: bytes) -> str:
    try:
        root = ElementTree.fromstring(xml)
    except ElementTree.ParseError as error:
        raise ExtractionError(FormatTag.PRESENTATION, f"malformed slide: {error}") from error
    runs = (element.text.strip() for element in root.iter(_TEXT_RUN_TAG) if element.text)
    return "\n".join(run for run in runs if run)


__all__ = ["extract_presentation"]
