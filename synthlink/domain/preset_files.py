"""Saving presets read from the unit.

Two formats:
- JSON, our own format, for storing and diffing dumps.
- .mbp, the Boost text archive Arturia MIDI Control Center imports.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import asdict
from pathlib import Path

from synthlink.domain.categories import category_name
from synthlink.domain.preset import MicroFreakPreset
from synthlink.errors import MalformedInputError
from synthlink.protocol.codes import MicroFreakLayout


logger = logging.getLogger(__name__)

MBP_HEADER = "serialization::archive 19 0 0"


def preset_to_json(preset: MicroFreakPreset) -> str:
    data = asdict(preset)
    data["chunks"] = [list(chunk) for chunk in preset.chunks]
    return json.dumps(data, indent=2)


def preset_from_json(text: str) -> MicroFreakPreset | None:
    """Load a preset saved by `preset_to_json`.

    Returns None (and logs why) when the document isn't a usable preset.
    """

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse preset JSON: %s", exc)
        return None

    if not isinstance(data, dict) or not data.get("name") or "chunks" not in data or "slot" not in data:
        logger.error("Preset JSON is missing name, slot or chunks")
        return None

    try:
        category = int(data.get("category", 0))
        return MicroFreakPreset(
            slot=int(data["slot"]),
            bank=int(data.get("bank", 0)),
            preset_number=int(data.get("preset_number", 0)),
            name=str(data["name"]),
            category=category,
            category_name=data.get("category_name") or category_name(category),
            firmware=int(data.get("firmware", 2)),
            supported=bool(data.get("supported", True)),
            chunks=tuple(bytes(chunk) for chunk in data["chunks"]),
        )
    except (TypeError, ValueError) as exc:
        logger.error("Preset JSON has invalid values: %s", exc)
        return None


def write_mbp(chunks: Sequence[bytes | Sequence[int]], output_path: Path | str) -> Path:
    """Write all 146 chunks as an .mbp archive: one line of decimals per chunk."""

    if len(chunks) != MicroFreakLayout.FULL_PRESET_CHUNKS:
        raise MalformedInputError(f"Expected {MicroFreakLayout.FULL_PRESET_CHUNKS} chunks, got {len(chunks)}")

    lines = [MBP_HEADER]
    for i, chunk in enumerate(chunks):
        raw = bytes(chunk)
        if len(raw) != MicroFreakLayout.CHUNK_SIZE:
            raise MalformedInputError(f"Chunk {i} has {len(raw)} bytes, expected {MicroFreakLayout.CHUNK_SIZE}")
        lines.append(" ".join(str(b) for b in raw))

    path = Path(output_path)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logger.info("Wrote %s (%d chunks)", path, len(chunks))
    return path
