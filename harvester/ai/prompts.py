"""Prompt builders for the relevance filter and the classification sorter."""

from __future__ import annotations

import json
from typing import Sequence

from harvester.ai import taxonomy
from harvester.models import LinkContext


def build_filter_prompt(
    context: LinkContext,
    target_subjects: Sequence[str],
    target_grades: Sequence[str],
) -> str:
    """Return the link-relevance prompt for *context*.

    Empty target lists mean "accept any" and are phrased that way.
    """
    subjects_str = ", ".join(target_subjects) if target_subjects else "ANY educational subject"
    grades_str = ", ".join(target_grades) if target_grades else "ANY grade level"
    subject_rule = (
        "(STRICT: Must match target subjects)" if target_subjects
        else "(Any educational subject acceptable)"
    )
    grade_rule = (
        "(STRICT: Must match target grades)" if target_grades
        else "(Any grade level acceptable)"
    )
    attrs = (
        f"- Attributes: {json.dumps(context.anchor_attributes)}\n"
        if context.anchor_attributes else ""
    )

    return (
        "You are an expert educational content analyzer for Ghana's education system.\n\n"
        "TASK: Analyze this link and determine if the resource is relevant to download.\n\n"
        "LINK INFORMATION:\n"
        f"- URL: {context.url}\n"
        f"- Link Text: {context.link_text or 'N/A'}\n"
        f"- Surrounding Text: {context.surrounding_text or 'N/A'}\n"
        f"- Page Title: {context.page_title or 'N/A'}\n"
        f"{attrs}\n"
        "TARGET FILTERS:\n"
        f"- Target Subjects: {subjects_str}\n"
        f"- Target Grades: {grades_str}\n\n"
        f"VALID SUBJECTS:\n{', '.join(taxonomy.FILTER_SUBJECTS)}\n\n"
        f"VALID GRADES:\n{', '.join(taxonomy.FILTER_GRADES)}\n\n"
        "ANALYSIS CRITERIA:\n"
        "1. Does the link point to an educational resource (PDF, document, presentation, etc.)?\n"
        f"2. Is it relevant to the target subjects? {subject_rule}\n"
        f"3. Is it relevant to the target grade levels? {grade_rule}\n"
        "4. Does it contain curriculum materials, textbooks, syllabi, past questions, "
        "or teaching resources?\n"
        "5. Is it specifically for Ghana's educational system (JHS/SHS/BECE/WASSCE)?\n\n"
        "RESPONSE FORMAT (JSON only):\n"
        "{\n"
        '    "shouldDownload": boolean,\n'
        '    "confidence": number (0.0 to 1.0),\n'
        '    "reasoning": "Brief explanation of decision (max 100 chars)",\n'
        '    "detectedSubject": "Detected subject or null",\n'
        '    "detectedGrade": "Detected grade level or null"\n'
        "}\n\n"
        "RULES:\n"
        "- If URL extension is .pdf, .doc, .docx, .ppt, .pptx -> likely downloadable resource\n"
        "- If link text contains subject keywords -> higher relevance\n"
        "- If surrounding text mentions curriculum/syllabus/past questions -> higher relevance\n"
        "- If URL/text contains irrelevant content (ads, navigation, contact) -> shouldDownload: false\n"
        "- Be conservative: When uncertain, set confidence < 0.7"
    )


def build_sort_prompt(filename: str, context: str | None = None) -> str:
    """Return the grade/subject classification prompt for *filename*."""
    extra = f'Extra Content: "{context}"\n' if context else ""
    rules = "\n".join(f"- {rule}" for rule in taxonomy.GRADE_MAPPING_RULES)

    return (
        "You are an educational resource expert in Ghana.\n"
        "Classify the file into a Grade and a Subject.\n\n"
        f'Filename: "{filename}"\n'
        f"{extra}\n"
        f"Available Grades: {', '.join(taxonomy.GRADE_BUCKETS)}\n"
        f"JHS Subjects: {', '.join(taxonomy.JHS_SUBJECTS)}\n"
        f"SHS Subjects: {', '.join(taxonomy.SHS_SUBJECTS)}\n\n"
        f"Rules for Grade Mapping:\n{rules}\n\n"
        "Steps:\n"
        "1. Determine the Grade first using the mapping rules.\n"
        "2. Choose the BEST matching Subject from the list for that grade's level.\n"
        '3. Return ONLY a JSON object: {"grade": "Grade_Name", "subject": "Subject_Name", '
        '"confidence": 0.0-1.0}\n'
        f'4. If unsure, use "{taxonomy.UNCATEGORIZED}".'
    )
