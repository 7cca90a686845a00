"""Bulk sorting modes built on :class:`~harvester.ai.sorter.ClassificationSorter`.

``sort_local_archive``
    Classifies every unclassified file in the local archive and moves it to
    ``<grade>/<subject>/`` or, when the result is uncertain, to
    ``Review_Needed/``.

``resort_remote_review``
    Re-classifies files already sitting in the remote ``Review_Needed``
    folder by filename alone and moves confident ones straight into the
    remote ``<grade>/<subject>`` folders (no local download round-trip).

Both modes pause ``throttle`` seconds between classification calls to share
the model quota with the relevance filter.
"""

from __future__ import annotations

import os
import shutil
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from harvester.ai import taxonomy
from harvester.ai.sorter import ClassificationSorter
from harvester.config import settings
from harvester.models import ClassificationResult
from harvester.storage.mappings import MappingStore
from harvester.storage.sync import STAGING_DIR_NAME, ArchivalSync

_SKIP_DIRS = frozenset({STAGING_DIR_NAME, taxonomy.REVIEW_NEEDED, *taxonomy.GRADE_BUCKETS})


@dataclass
class SortReport:
    sorted: list[tuple[str, str]] = field(default_factory=list)
    review: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    unmapped: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def collect_unclassified(root: Path) -> list[Path]:
    """Return files under *root* not yet placed in a grade or review folder."""
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
        for name in sorted(filenames):
            if name.startswith(".") or name.endswith(".part"):
                continue
            found.append(Path(dirpath) / name)
    return found


def extract_pdf_context(path: Path, max_pages: int = 2) -> Optional[str]:
    """Return text from the first pages of a PDF, or ``None`` if unreadable."""
    import pypdf  # noqa: PLC0415

    try:
        reader = pypdf.PdfReader(str(path))
        pages = [(page.extract_text() or "") for page in reader.pages[:max_pages]]
    except (OSError, ValueError, pypdf.errors.PyPdfError) as exc:
        print(f"[SORTER] Could not read PDF text from {path.name}: {exc}")
        return None
    text = "\n".join(p for p in pages if p.strip())
    return text or None


def placement_for(result: ClassificationResult, threshold: float) -> tuple[str, Optional[str]]:
    """Return ``(grade_folder, subject_folder)``; uncertain results go to review."""
    if (
        result.confidence < threshold
        or result.grade == taxonomy.UNCATEGORIZED
        or result.subject == taxonomy.UNCATEGORIZED
    ):
        return taxonomy.REVIEW_NEEDED, None
    return result.grade, result.subject


def unique_destination(target_dir: Path, name: str, clock: Callable[[], float] = time.time) -> Path:
    destination = target_dir / name
    if not destination.exists():
        return destination
    stem, suffix = os.path.splitext(name)
    return target_dir / f"{stem}_{int(clock() * 1000)}{suffix}"


# ---------------------------------------------------------------------------
# Local bulk sort
# ---------------------------------------------------------------------------

def sort_local_archive(
    root: Path,
    sorter: ClassificationSorter,
    mappings: MappingStore | None = None,
    threshold: float | None = None,
    throttle: float | None = None,
    use_pdf_context: bool | None = None,
    stop_event: threading.Event | None = None,
    sleep: Callable[[float], object] | None = None,
    clock: Callable[[], float] = time.time,
) -> SortReport:
    root = Path(root)
    threshold = settings.sort_confidence_threshold if threshold is None else threshold
    throttle = settings.sort_throttle if throttle is None else throttle
    use_pdf_context = settings.sort_use_pdf_context if use_pdf_context is None else use_pdf_context
    stop = stop_event or threading.Event()
    pause = sleep or stop.wait

    report = SortReport()
    files = collect_unclassified(root)
    print(f"[SORTER] Found {len(files)} file(s) to classify.")

    for index, path in enumerate(files):
        if stop.is_set():
            print("[SORTER] Stop requested; leaving remaining files in place.")
            break
        if index:
            pause(throttle)

        context = None
        if use_pdf_context and path.suffix.lower() == ".pdf":
            context = extract_pdf_context(path)

        print(f"[SORTER] Categorizing: {path.name} …")
        result = sorter.classify(path.name, context)
        grade, subject = placement_for(result, threshold)

        target_dir = root / grade / subject if subject else root / grade
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            destination = unique_destination(target_dir, path.name, clock)
            shutil.move(str(path), str(destination))
        except OSError as exc:
            print(f"[LOCAL] Move failed for {path.name}: {exc}")
            report.failed.append(str(path))
            continue

        if subject:
            placement = f"{grade}/{subject}"
            print(f"[SORTER] {path.name} → {placement} ({result.confidence:.0%})")
            report.sorted.append((str(path), str(destination)))
        else:
            placement = grade
            print(
                f"[SORTER] Low confidence ({result.confidence:.0%}) or uncategorized: "
                f"{path.name} → {taxonomy.REVIEW_NEEDED}"
            )
            report.review.append(str(destination))

        if mappings is not None:
            try:
                mappings.add(destination.relative_to(root).as_posix(), placement)
            except OSError as exc:
                print(f"[SORTER] Could not record mapping for {destination.name}: {exc}")
                report.unmapped.append(str(destination))

    return report


# ---------------------------------------------------------------------------
# Remote re-sort
# ---------------------------------------------------------------------------

def resort_remote_review(
    sync: ArchivalSync,
    sorter: ClassificationSorter,
    root_folder_id: str,
    threshold: float | None = None,
    throttle: float | None = None,
    stop_event: threading.Event | None = None,
    sleep: Callable[[float], object] | None = None,
) -> SortReport:
    threshold = settings.sort_confidence_threshold if threshold is None else threshold
    throttle = settings.sort_throttle if throttle is None else throttle
    stop = stop_event or threading.Event()
    pause = sleep or stop.wait

    report = SortReport()
    review_id = sync.find_folder(taxonomy.REVIEW_NEEDED, root_folder_id)
    if review_id is None:
        print(f"[DRIVE] No {taxonomy.REVIEW_NEEDED} folder found. Done.")
        return report

    items = sync.list_files(review_id)
    print(f"[DRIVE] Found {len(items)} file(s) in the review queue.")

    for index, item in enumerate(items):
        if stop.is_set():
            break
        if index:
            pause(throttle)

        result = sorter.classify(item.name)
        grade, subject = placement_for(result, threshold)
        if subject is None:
            print(f"[DRIVE] Still unsure about {item.name}; keeping in review.")
            report.review.append(item.name)
            continue

        grade_id = sync.get_or_create_folder(grade, root_folder_id)
        subject_id = sync.get_or_create_folder(subject, grade_id) if grade_id else None
        if subject_id is None or not sync.move(item.id, review_id, subject_id):
            report.failed.append(item.name)
            continue

        print(f"[DRIVE] Moved {item.name} → {grade}/{subject} ({result.confidence:.0%})")
        report.sorted.append((item.name, f"{grade}/{subject}"))

    return report
