# services/hit_builder.py
"""
CSV upload -> HIT requests.

An upload lives at '{HITLayoutId}/{filename}'. The first CSV row names the
layout placeholders; every following row becomes one HIT whose layout
parameters are that row's sanitized values.
"""

import csv
import html
import io
from typing import Any, Dict, List, Mapping, Tuple

from bs4 import BeautifulSoup

from core.exceptions import LayoutNotFound, MissingLayoutId, ParseError
from core.logger import logger
from integrations.mturk_client import MTurkGateway
from schemas.turk_models import HitRequest, HitSubmission
from utils.fanout import map_bounded

# Elements whose content is code, not text
DROPPED_ELEMENTS = ("script", "style", "iframe", "noscript", "textarea", "object", "embed")


def sanitize_html(value: str) -> str:
    """
    Strip markup from an untrusted CSV cell.

    Answers are rendered back into the worker's HTML layout, so tags are
    removed, the contents of script-like elements are dropped and the
    remaining text is re-escaped.
    """
    if not value:
        return ""
    soup = BeautifulSoup(value, "html.parser")
    for element in soup(DROPPED_ELEMENTS):
        element.decompose()
    return html.escape(soup.get_text(), quote=False)


def layout_id_from_key(object_key: str) -> str:
    """Return the '{layoutId}' segment of an S3 object key."""
    layout_id, sep, _ = object_key.partition("/")
    if not sep or not layout_id:
        raise MissingLayoutId(object_key)
    return layout_id


def resolve_layout(layouts: Mapping[str, Dict[str, Any]], layout_id: str) -> Dict[str, Any]:
    layout = layouts.get(layout_id)
    if layout is None:
        raise LayoutNotFound(layout_id)
    return layout


def _read_rows(csv_bytes: bytes) -> List[Tuple[int, List[str]]]:
    """Return (line_number, cells) for every non-blank row; lines count from 1."""
    try:
        text = csv_bytes.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(f"CSV upload is not valid UTF-8: {e}") from e

    rows = []
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    start = 1
    try:
        for row in reader:
            if row:
                rows.append((start, row))
            # quoted cells may span lines
            start = reader.line_num + 1
    except csv.Error as e:
        raise ParseError(f"Malformed CSV upload: {e}") from e
    return rows


def build(csv_bytes: bytes, layouts: Mapping[str, Dict[str, Any]], layout_id: str) -> List[HitRequest]:
    """
    Build one HitRequest per CSV data row, in row order.

    Raises:
        LayoutNotFound: if `layout_id` is not configured
        ParseError: if the upload is not a readable CSV
    """
    layout = resolve_layout(layouts, layout_id)
    rows = _read_rows(csv_bytes)
    if not rows:
        logger.warning(f"CSV upload for layout {layout_id} is empty")
        return []

    header, data = rows[0][1], rows[1:]
    requests = []
    for line_number, row in data:
        # Short rows pad with empty values; cells beyond the header are ignored
        cells = row + [""] * (len(header) - len(row))
        parameters = {name: sanitize_html(cells[i]) for i, name in enumerate(header)}
        requests.append(HitRequest(
            layout_fields=dict(layout),
            HITLayoutId=layout_id,
            HITLayoutParameters=parameters,
            line_number=line_number,
        ))

    logger.info(f"Built {len(requests)} HIT request(s) for layout {layout_id}")
    return requests


class HitBuilder:
    """Builds HIT requests for an upload and submits them to MTurk."""

    def __init__(self, mturk: MTurkGateway, max_workers: int = None):
        self.mturk = mturk
        self.max_workers = max_workers

    def submit_all(self, requests: List[HitRequest]) -> List[HitSubmission]:
        """
        Create every HIT; one failed row does not stop the others.
        Rows are labelled with their CSV line (the header is line 1), so
        skipped blank lines do not shift the labels.
        """
        outcomes = map_bounded(self.mturk.create_hit, requests, self.max_workers)
        submissions = []
        for index, outcome in enumerate(outcomes, start=1):
            line_number = outcome.item.line_number
            row_number = line_number if line_number is not None else index
            if outcome.ok:
                submissions.append(HitSubmission(row_number=row_number, hit_id=outcome.value))
            else:
                logger.error(f"Failed to create HIT for line {row_number}: {outcome.error}")
                submissions.append(HitSubmission(row_number=row_number, error=outcome.error))
        return submissions
