"""
Competitor lists uploaded as CSV or XLSX.

Only the first column is read, and row 1 is skipped when it holds a column
title. Each remaining non-blank row either becomes a competitor name or comes
back as a :class:`RejectedRow` naming the reason.
"""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Iterable

from fastapi import HTTPException, UploadFile
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from leadpoacher.logging_utils import log_event
from leadpoacher.models import RejectedRow
from leadpoacher.utils.validators import MIN_COMPETITOR_LENGTH, normalize_competitor_name

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = ('.csv', '.xlsx')
HEADER_TITLES = {'competitor', 'competitors', 'konkurrent', 'wettbewerber', 'name', 'company', 'firma'}
MAX_COMPETITOR_LENGTH = 200

Cell = tuple[int, object]


@dataclass
class CompetitorList:
    names: list[str] = field(default_factory=list)
    rejected: list[RejectedRow] = field(default_factory=list)


def first_column_of_csv(raw: bytes) -> list[Cell]:
    text = raw.decode('utf-8-sig', errors='replace')
    try:
        return [(number, row[0] if row else None) for number, row in enumerate(csv.reader(io.StringIO(text)), start=1)]
    except csv.Error as exc:
        raise HTTPException(status_code=400, detail=f'Could not read CSV: {exc}') from exc


def first_column_of_xlsx(raw: bytes) -> list[Cell]:
    try:
        workbook = load_workbook(io.BytesIO(raw), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError) as exc:
        raise HTTPException(status_code=400, detail='Could not read XLSX workbook') from exc
    try:
        rows = workbook.active.iter_rows(max_col=1, values_only=True)
        return [(number, row[0] if row else None) for number, row in enumerate(rows, start=1)]
    finally:
        workbook.close()


def collect_competitors(cells: Iterable[Cell]) -> CompetitorList:
    """Sort first-column cells into accepted names and rejected rows."""
    result = CompetitorList()
    first_seen: dict[str, int] = {}

    for number, value in cells:
        name = normalize_competitor_name('' if value is None else str(value))
        if not name:
            continue
        if number == 1 and name.lower() in HEADER_TITLES:
            continue

        reason = None
        if len(name) < MIN_COMPETITOR_LENGTH:
            reason = f'shorter than {MIN_COMPETITOR_LENGTH} characters'
        elif len(name) > MAX_COMPETITOR_LENGTH:
            reason = f'longer than {MAX_COMPETITOR_LENGTH} characters'
        elif name.casefold() in first_seen:
            reason = f'duplicate of row {first_seen[name.casefold()]}'

        if reason:
            result.rejected.append(RejectedRow(row=number, value=name, reason=reason))
            continue
        first_seen[name.casefold()] = number
        result.names.append(name)

    return result


async def load_competitor_list(file: UploadFile) -> CompetitorList:
    suffix = PurePosixPath(file.filename or '').suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise HTTPException(status_code=400, detail='Only .csv and .xlsx files are supported')

    raw = await file.read()
    if not raw:
        raise HTTPException(status_code=400, detail='Uploaded file is empty')

    cells = first_column_of_csv(raw) if suffix == '.csv' else first_column_of_xlsx(raw)
    competitors = collect_competitors(cells)
    log_event(
        logger,
        logging.INFO,
        'competitor_upload_parsed',
        filename=file.filename,
        accepted=len(competitors.names),
        rejected=len(competitors.rejected),
    )

    if not competitors.names:
        raise HTTPException(status_code=400, detail='No valid competitor names found in first column')
    return competitors
