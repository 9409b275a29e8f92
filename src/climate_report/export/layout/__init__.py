"""
Module: export.layout

Purpose:
    Page layout for report export.
    Converts captured sections into positioned draw instructions.

Key Functions:
    - plan_paginated(): Multi-page policy
    - plan_composite(): Single-page policy
    - plan_two_page(): Fixed two-page policy

Key Classes:
    - SectionRequest: Section descriptor
    - DrawInstruction: Page primitive
    - LayoutPlan: Layout output

Used By:
    - export.controller: Report composition
"""

from .models import (
    SectionRequest,
    CapturedSection,
    ClipRect,
    DrawInstruction,
    LayoutPlan,
)
from .planner import (
    plan_paginated,
    plan_composite,
    plan_two_page,
    pages_needed,
    composite_shrink_factor,
    fit_ratio,
)

__all__ = [
    # Models
    "SectionRequest",
    "CapturedSection",
    "ClipRect",
    "DrawInstruction",
    "LayoutPlan",
    # Functions
    "plan_paginated",
    "plan_composite",
    "plan_two_page",
    "pages_needed",
    "composite_shrink_factor",
    "fit_ratio",
]
