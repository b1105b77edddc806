"""Formatting utilities for structured outputs."""

import json
from collections import OrderedDict
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from .constants import TOP_K
from .ranking import top_k
from .taxonomy import CLASS_LABELS


def ordered_probs(probs: Optional[Sequence[float]], labels: Sequence[str] = CLASS_LABELS) -> "OrderedDict[str, float]":
    """Map every label to its score in canonical order; missing vectors give 0.0."""
    if probs is None or len(probs) == 0:
        return OrderedDict((lbl, 0.0) for lbl in labels)
    return OrderedDict((lbl, float(p)) for lbl, p in zip(labels, probs))


def build_record(
    image_path: str,
    probs: Optional[Sequence[float]],
    k: int = TOP_K,
    labels: Sequence[str] = CLASS_LABELS
) -> Dict:
    """Build a structured record for JSON/CSV output."""
    # Handle missing probability vector (error case)
    if probs is None or len(probs) == 0:
        top = []
        pred_lbl, pred_c = "", 0.0
    else:
        ranked = top_k(probs, labels, k)
        top = [r.as_dict() for r in ranked]
        pred_lbl, pred_c = ranked[0].label, ranked[0].confidence

    return OrderedDict([
        ("image", image_path),
        ("predicted_label", pred_lbl),
        ("confidence", float(pred_c)),
        ("topk", top),
        ("probs", ordered_probs(probs, labels)),
    ])


def write_jsonl(file_handle, records: List[Dict]) -> None:
    """Write records as JSONL (one JSON object per line)."""
    for record in records:
        json.dump(record, file_handle, separators=(',', ':'))
        file_handle.write('\n')


def write_json_array(file_handle, records: List[Dict], pretty: bool = False) -> None:
    """Write records as a JSON array."""
    indent = 2 if pretty else None
    json.dump(records, file_handle, indent=indent, separators=(',', ':') if not pretty else None)


def write_csv_row(writer, record: Dict) -> None:
    """Write a single CSV row from a record."""
    row = [record["image"], record["predicted_label"], record["confidence"]]
    row += list(record["probs"].values())
    writer.writerow(row)


def get_output_format(output_path: Union[str, Path, None]) -> str:
    """Determine output format based on file extension."""
    if not output_path:
        return "jsonl"  # default to JSONL for stdout

    ext = Path(output_path).suffix.lower()
    if ext == ".json":
        return "json"
    elif ext == ".jsonl":
        return "jsonl"
    elif ext == ".csv":
        return "csv"
    else:
        return "jsonl"  # default to JSONL for unknown extensions
