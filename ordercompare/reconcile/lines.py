"""Line-item reconciler — aligns product lines across two orders and classifies each pair.

Lines are paired by description, never by position:

1. exact matches on the normalized description key, 1:1 in order of first
   occurrence;
2. remaining PO lines take the most similar remaining SO line at or above
   the match threshold (ties go to the earlier SO line);
3. whatever is left is PO_ONLY or SO_ONLY.

Each pair is then classified with the precedence
description mismatch > several fields differ > one field differs > MATCHED.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from ordercompare.config import settings
from ordercompare.reconcile.normalizer import (
    compare_values,
    description_key,
    description_similarity,
    normalize_text,
)
from ordercompare.schemas.common import LineStatus
from ordercompare.schemas.comparison import ProductLineComparison
from ordercompare.schemas.orders import ProductLine

logger = structlog.get_logger(__name__)

# (attribute, label used in notes, status when only this field differs)
DETAIL_FIELDS: tuple[tuple[str, str, LineStatus], ...] = (
    ("quantity", "quantity", LineStatus.MISMATCH_QUANTITY),
    ("unit_price", "unit price", LineStatus.MISMATCH_UNIT_PRICE),
    ("total_price", "total price", LineStatus.MISMATCH_TOTAL_PRICE),
)

# Line-level numbers that are compared but have no status of their own.
SECONDARY_FIELDS: tuple[tuple[str, str], ...] = (
    ("discount", "discount"),
    ("tax", "tax"),
)


@dataclass(frozen=True)
class LinePairing:
    """A PO line and an SO line judged to be the same product."""
    po_index: int
    so_index: int
    similarity: float
    fuzzy: bool


# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------

def _line_key(description: str) -> str:
    """Pairing key for a description; punctuation-only text is kept as written."""
    return description_key(description) or normalize_text(description)


def align_lines(
    po_lines: Sequence[ProductLine],
    so_lines: Sequence[ProductLine],
    match_threshold: float,
) -> tuple[list[LinePairing], list[int], list[int]]:
    """Pair PO and SO lines by description.

    Returns (pairings, unmatched PO indices, unmatched SO indices). No line
    is used in more than one pairing.
    """
    po_keys = [_line_key(line.description) for line in po_lines]
    so_keys = [_line_key(line.description) for line in so_lines]

    pairings: dict[int, LinePairing] = {}
    so_taken: set[int] = set()

    # Pass 1: exact key matches
    for po_idx, po_key in enumerate(po_keys):
        for so_idx, so_key in enumerate(so_keys):
            if po_key and so_idx not in so_taken and so_key == po_key:
                pairings[po_idx] = LinePairing(po_idx, so_idx, 1.0, fuzzy=False)
                so_taken.add(so_idx)
                break

    # Pass 2: best remaining candidate by similarity
    for po_idx, po_key in enumerate(po_keys):
        if po_idx in pairings:
            continue
        best_idx: Optional[int] = None
        best_score = 0.0
        for so_idx, so_key in enumerate(so_keys):
            if so_idx in so_taken:
                continue
            score = description_similarity(po_key, so_key)
            if score >= match_threshold and score > best_score:
                best_idx, best_score = so_idx, score
        if best_idx is not None:
            pairings[po_idx] = LinePairing(po_idx, best_idx, best_score, fuzzy=True)
            so_taken.add(best_idx)
            logger.debug(
                "line_fuzzy_paired",
                po_description=po_lines[po_idx].description,
                so_description=so_lines[best_idx].description,
                similarity=round(best_score, 3),
            )

    ordered = [pairings[i] for i in sorted(pairings)]
    unmatched_po = [i for i in range(len(po_lines)) if i not in pairings]
    unmatched_so = [i for i in range(len(so_lines)) if i not in so_taken]
    return ordered, unmatched_po, unmatched_so


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _display(value: object) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return "not present"
    return str(value).strip()


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


def _number_to_text(value: Optional[float]) -> Optional[str]:
    return None if value is None else repr(value)


def _field_note(label: str, po_value: object, so_value: object) -> str:
    return f"PO {label} {_display(po_value)} vs SO {label} {_display(so_value)}"


def classify_pair(
    po_line: ProductLine,
    so_line: ProductLine,
    pairing: LinePairing,
    tolerance: float,
    safe_threshold: float,
) -> tuple[LineStatus, str]:
    """Decide the status of a paired line and explain it."""
    notes: list[str] = []
    description_differs = pairing.fuzzy and pairing.similarity < safe_threshold
    if description_differs:
        notes.append(
            f'PO description "{po_line.description}" vs SO description '
            f'"{so_line.description}" ({pairing.similarity:.0%} similar)'
        )

    differing: list[LineStatus] = []
    one_sided = False
    for attr, label, status in DETAIL_FIELDS:
        po_value = _blank_to_none(getattr(po_line, attr))
        so_value = _blank_to_none(getattr(so_line, attr))
        if compare_values(po_value, so_value, tolerance) is None:
            differing.append(status)
            one_sided = one_sided or po_value is None or so_value is None
            notes.append(_field_note(label, po_value, so_value))

    secondary_differs = False
    for attr, label in SECONDARY_FIELDS:
        po_value = _number_to_text(getattr(po_line, attr))
        so_value = _number_to_text(getattr(so_line, attr))
        if compare_values(po_value, so_value, tolerance) is None:
            secondary_differs = True
            notes.append(_field_note(label, getattr(po_line, attr), getattr(so_line, attr)))

    if description_differs:
        status = LineStatus.MISMATCH_DESCRIPTION
    elif len(differing) > 1 or (differing and one_sided) or secondary_differs:
        status = LineStatus.PARTIAL_MATCH_DETAILS_DIFFER
    elif differing:
        status = differing[0]
    else:
        status = LineStatus.MATCHED

    if status is LineStatus.MATCHED:
        if pairing.fuzzy:
            return status, f"All details match (descriptions {pairing.similarity:.0%} similar)"
        return status, "All details match"
    return status, "; ".join(notes)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _comparison(
    po_line: Optional[ProductLine],
    so_line: Optional[ProductLine],
    status: LineStatus,
    notes: str,
) -> ProductLineComparison:
    return ProductLineComparison(
        po_product_description=po_line.description if po_line else None,
        po_quantity=po_line.quantity if po_line else None,
        po_unit_price=po_line.unit_price if po_line else None,
        po_total_price=po_line.total_price if po_line else None,
        so_product_description=so_line.description if so_line else None,
        so_quantity=so_line.quantity if so_line else None,
        so_unit_price=so_line.unit_price if so_line else None,
        so_total_price=so_line.total_price if so_line else None,
        status=status,
        comparison_notes=notes,
    )


def reconcile_lines(
    po_lines: Sequence[ProductLine],
    so_lines: Sequence[ProductLine],
    tolerance: float | None = None,
    match_threshold: float | None = None,
    safe_threshold: float | None = None,
) -> list[ProductLineComparison]:
    """Reconcile the product lines of a purchase order and a sales order.

    Every PO line and every SO line appears in exactly one returned entry.
    Entries follow PO order (unpaired PO lines in place), followed by the
    SO lines that found no counterpart, in SO order.
    """
    if tolerance is None:
        tolerance = settings.numeric_relative_tolerance
    if match_threshold is None:
        match_threshold = settings.description_match_threshold
    if safe_threshold is None:
        safe_threshold = settings.description_safe_threshold

    pairings, unmatched_po, unmatched_so = align_lines(po_lines, so_lines, match_threshold)
    by_po_index = {p.po_index: p for p in pairings}

    comparisons: list[ProductLineComparison] = []
    for po_idx, po_line in enumerate(po_lines):
        pairing = by_po_index.get(po_idx)
        if pairing is None:
            comparisons.append(
                _comparison(po_line, None, LineStatus.PO_ONLY, "Present on purchase order only")
            )
            continue
        so_line = so_lines[pairing.so_index]
        status, notes = classify_pair(po_line, so_line, pairing, tolerance, safe_threshold)
        comparisons.append(_comparison(po_line, so_line, status, notes))

    for so_idx in unmatched_so:
        comparisons.append(
            _comparison(None, so_lines[so_idx], LineStatus.SO_ONLY, "Present on sales order only")
        )

    logger.info(
        "lines_reconciled",
        po_lines=len(po_lines),
        so_lines=len(so_lines),
        paired=len(pairings),
        po_only=len(unmatched_po),
        so_only=len(unmatched_so),
    )
    return comparisons
