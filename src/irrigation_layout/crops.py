"""Crop-parameter table reader."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import BinaryIO

from pydantic import TypeAdapter

from .models import CropParameters

logger = logging.getLogger(__name__)

_ROWS = TypeAdapter(list[CropParameters])


def read_crop_table(
    path: str | Path | None = None,
    *,
    data: bytes | str | None = None,
    file: BinaryIO | None = None,
) -> dict[str, CropParameters]:
    """Read a crop table and index it by crop value.

    The table is a JSON list of crop rows, or an object with a ``crops`` list.
    Supports three sources:
    - File path: pass ``path``
    - Raw JSON: pass ``data``
    - File object: pass ``file``
    """
    if path is not None:
        raw = Path(path).read_text(encoding="utf-8")
    elif data is not None:
        raw = data.decode("utf-8") if isinstance(data, bytes) else data
    elif file is not None:
        raw = file.read().decode("utf-8")
    else:
        raise ValueError("Provide either path, data or file")

    document = json.loads(raw)
    if isinstance(document, dict):
        document = document.get("crops")
    if not isinstance(document, list):
        raise ValueError("Crop table must be a list of crops or an object with a 'crops' list")

    table: dict[str, CropParameters] = {}
    for crop in _ROWS.validate_python(document):
        if crop.value in table:
            raise ValueError(f"Duplicate crop value: {crop.value}")
        table[crop.value] = crop
    logger.debug("loaded %d crops", len(table))
    return table
