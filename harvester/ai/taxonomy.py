"""Controlled vocabularies for Ghana's JHS / SHS curriculum.

Two distinct vocabularies live here:

* The **filter vocabulary** (``FILTER_SUBJECTS`` / ``FILTER_GRADES``) is broad
  and alias-friendly.  It is shown to the model when deciding whether a link
  is worth downloading and is used for keyword matching by the fallback
  heuristic.
* The **sorting taxonomy** (``GRADE_BUCKETS`` plus the two level-scoped
  subject whitelists) is strict.  Every classification result is validated
  against it; anything outside becomes ``UNCATEGORIZED``.
"""

from __future__ import annotations

UNCATEGORIZED = "Uncategorized"
REVIEW_NEEDED = "Review_Needed"

# ---------------------------------------------------------------------------
# Sorting taxonomy
# ---------------------------------------------------------------------------

GRADE_BUCKETS: tuple[str, ...] = (
    "Grade7_JHS1",
    "Grade8_JHS2",
    "Grade9_JHS3",
    "SHS1",
    "SHS2",
    "SHS3",
)

JHS_SUBJECTS: tuple[str, ...] = (
    "Career Technology",
    "Computing_ICT",
    "Creative Arts and Design_CAD",
    "English Language",
    "French",
    "Ghanaian Language",
    "Mathematics",
    "Physical and Health Education_PHE",
    "Religious and Moral Education_RME",
    "Science",
    "Social Studies",
)

SHS_SUBJECTS: tuple[str, ...] = (
    "Applied Electricity",
    "Auto Mechanics",
    "Biology",
    "Building Construction",
    "Business Management",
    "Ceramics",
    "Chemistry",
    "Clothing and Textiles",
    "Computing",
    "Cost Accounting",
    "Economics",
    "Electronics",
    "English Language",
    "Financial Accounting",
    "Food and Nutrition",
    "French",
    "General Knowledge in Art",
    "Geography",
    "Government",
    "Graphic Design",
    "History",
    "Information and Communication Technology_ICT",
    "Integrated Science",
    "Leatherwork",
    "Literature-in-English",
    "Management in Living",
    "Mathematics_Core",
    "Mathematics_Elective",
    "Metalwork",
    "Music",
    "Physical Education_PHE",
    "Physics",
    "Picture Making",
    "Religious and Moral Education_RME",
    "Sculpture",
    "Social Studies",
    "Technical Drawing",
    "Textiles",
    "Woodwork",
)

GRADE_MAPPING_RULES: tuple[str, ...] = (
    '"Grade7_JHS1": Covers JHS 1, Basic 7, Form 1, Year 1 (JHS).',
    '"Grade8_JHS2": Covers JHS 2, Basic 8, Form 2, Year 2 (JHS).',
    '"Grade9_JHS3": Covers JHS 3, Basic 9, Form 3, Year 3 (JHS), BECE.',
    '"SHS1": Senior High 1, Year 1 (SHS), Form 1 (SHS).',
    '"SHS2": Senior High 2, Year 2 (SHS), Form 2 (SHS).',
    '"SHS3": Senior High 3, Year 3 (SHS), Form 3 (SHS), WASSCE.',
)

# ---------------------------------------------------------------------------
# Filter vocabulary
# ---------------------------------------------------------------------------

FILTER_SUBJECTS: tuple[str, ...] = (
    # JHS
    "Career Technology", "Computing", "ICT", "Creative Arts", "Design",
    "English Language", "French", "Ghanaian Language", "Mathematics",
    "Physical Education", "Health Education", "Religious Education",
    "Moral Education", "Science", "Social Studies",
    # SHS
    "Applied Electricity", "Auto Mechanics", "Biology", "Building Construction",
    "Business Management", "Ceramics", "Chemistry", "Clothing and Textiles",
    "Cost Accounting", "Economics", "Electronics", "Financial Accounting",
    "Food and Nutrition", "Geography", "Government", "Graphic Design",
    "History", "Integrated Science", "Leatherwork", "Literature",
    "Management in Living", "Metalwork", "Music", "Physics",
    "Picture Making", "Sculpture", "Technical Drawing", "Textiles",
    "Woodwork", "Robotics", "Engineering",
)

FILTER_GRADES: tuple[str, ...] = (
    "JHS1", "JHS2", "JHS3", "BECE",
    "SHS1", "SHS2", "SHS3", "WASSCE",
    "Basic 7", "Basic 8", "Basic 9",
    "Form 1", "Form 2", "Form 3",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def is_canonical_grade(grade: str) -> bool:
    return grade in GRADE_BUCKETS


def level_for_grade(grade: str) -> str | None:
    """Return ``"SHS"`` or ``"JHS"`` for a canonical grade, else ``None``."""
    if not is_canonical_grade(grade):
        return None
    return "SHS" if grade.startswith("SHS") else "JHS"


def subjects_for_grade(grade: str) -> tuple[str, ...]:
    """Return the subject whitelist scoped to *grade*'s level.

    Non-canonical grades get the union of both lists so a subject can still
    be checked for plain validity.
    """
    level = level_for_grade(grade)
    if level == "SHS":
        return SHS_SUBJECTS
    if level == "JHS":
        return JHS_SUBJECTS
    return tuple(dict.fromkeys(JHS_SUBJECTS + SHS_SUBJECTS))


def is_valid_subject(grade: str, subject: str) -> bool:
    return subject in subjects_for_grade(grade)
