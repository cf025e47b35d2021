"""
IoT Tech Backend — Case Study Field Validation
================================================

What:  Checks title, description, and industry before any backend is touched.
How:   Each field is stripped, then checked for presence and for the bounds in
       FIELD_LIMITS. Every violated constraint is collected into a single
       ValidationError so the client can fix the form in one round trip.
Who:   Called first by every CaseStudyRepository write.
"""

from typing import Dict, List, Optional

from app.exceptions import ValidationError
from app.schemas.case_study import FIELD_LIMITS, CaseStudyFields


def validate_case_study_fields(
    title: Optional[str],
    description: Optional[str],
    industry: Optional[str],
) -> CaseStudyFields:
    """
    Validate the editable fields of a case study.

    Returns:
        CaseStudyFields with surrounding whitespace stripped.

    Raises:
        ValidationError: one or more fields are missing or out of bounds.
            `message` joins all problems with "; "; `context["errors"]` lists
            them as {"field", "message"} pairs in field order.
    """
    raw = {"title": title, "description": description, "industry": industry}
    errors: List[Dict[str, str]] = []

    for field, (low, high) in FIELD_LIMITS.items():
        value = (raw[field] or "").strip()
        if not value:
            errors.append({"field": field, "message": f"{field} is required"})
        elif not low <= len(value) <= high:
            errors.append({
                "field": field,
                "message": f"{field} must be between {low} and {high} characters",
            })

    if errors:
        raise ValidationError(
            message="; ".join(e["message"] for e in errors),
            field=errors[0]["field"],
            context={"errors": errors},
        )

    return CaseStudyFields(**raw)
