"""
Course catalog: default component templates per branch and semester.

A course remembers the template key it was created from so a reset can
rebuild exactly the same components.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .entities import Component, SubItem


DEFAULT_TEMPLATE_KEY = "default"
NEW_COMPONENT_NAME = "New Component"


@dataclass(frozen=True)
class SubItemTemplate:
    name: str
    max_score: float = 100


@dataclass(frozen=True)
class ComponentTemplate:
    name: str
    weight: float
    max_score: float = 100
    best_of: Optional[int] = None
    sub_items: Tuple[SubItemTemplate, ...] = ()


@dataclass(frozen=True)
class CourseTemplate:
    key: str
    name: str
    full_name: str
    color: str
    components: Tuple[ComponentTemplate, ...] = field(default_factory=tuple)


DEFAULT_TEMPLATE: Tuple[ComponentTemplate, ...] = (
    ComponentTemplate("Quizzes", 10),
    ComponentTemplate("Midsem", 25),
    ComponentTemplate("Endsem", 35),
    ComponentTemplate("Assignments", 30),
)


CATALOG: Dict[Tuple[str, int], List[CourseTemplate]] = {
    ("CSE", 3): [
        CourseTemplate("iss", "ISS", "Information Security & Systems", "#22d3ee", (
            ComponentTemplate("Quiz (×2)", 10),
            ComponentTemplate("Midsem", 15),
            ComponentTemplate("Midlab", 15),
            ComponentTemplate("Endsem", 15),
            ComponentTemplate("Endlab", 20),
            ComponentTemplate("Assignment", 5),
            ComponentTemplate("Labs & Paper Assignments", 10),
            ComponentTemplate("Project", 10),
        )),
        CourseTemplate("cso", "CSO", "Computer Systems Organisation", "#a78bfa", (
            ComponentTemplate("Quiz (×2)", 10),
            ComponentTemplate("Midsem", 15),
            ComponentTemplate("Endsem", 25),
            ComponentTemplate("Endlab + Inclass Test", 15),
            ComponentTemplate("Assignments (×3)", 30),
        )),
        CourseTemplate("iot", "IoT", "Internet of Things", "#34d399", (
            ComponentTemplate("Midsem", 30),
            ComponentTemplate("Endsem", 30),
            ComponentTemplate("Labs (×8)", 10),
            ComponentTemplate("Project", 30),
        )),
        CourseTemplate("la", "LA", "Linear Algebra", "#fb923c", (
            ComponentTemplate("Quiz (×2)", 20),
            ComponentTemplate("Midsem", 20),
            ComponentTemplate("Assignments", 30),
            ComponentTemplate("Endsem", 30),
        )),
        CourseTemplate("dsa", "DSA", "Data Structures & Algorithms", "#f472b6", (
            ComponentTemplate("Assignments (×3)", 9),
            ComponentTemplate("Labs (best 8/9)", 20, best_of=8,
                              sub_items=tuple(SubItemTemplate(f"Lab {n}") for n in range(1, 10))),
            ComponentTemplate("Graded Revision Lab", 5),
            ComponentTemplate("Midlab", 8),
            ComponentTemplate("Endlab", 13),
            ComponentTemplate("Midsem", 15),
            ComponentTemplate("Endsem", 22),
        )),
    ],
}


def get_courses(branch: str, semester: int) -> List[CourseTemplate]:
    """Catalog courses for a branch and semester; empty when unknown."""
    if not branch:
        return []
    try:
        semester = int(semester)
    except (TypeError, ValueError):
        return []
    return list(CATALOG.get((branch.strip().upper(), semester), []))


def find_template(key: Optional[str]) -> Tuple[ComponentTemplate, ...]:
    """Component templates for a course template key."""
    if key and key != DEFAULT_TEMPLATE_KEY:
        for courses in CATALOG.values():
            for course in courses:
                if course.key == key:
                    return course.components
    return DEFAULT_TEMPLATE


def build_components(course_id: str, templates: Tuple[ComponentTemplate, ...]) -> List[Component]:
    """
    Instantiate components for a course from templates.

    Ids are derived from the course id and position, so rebuilding the same
    template for the same course yields identical components.
    """
    components = []
    for index, template in enumerate(templates, start=1):
        component_id = f"{course_id}-{index}"
        sub_items = [
            SubItem(name=sub.name, max_score=sub.max_score, entity_id=f"{component_id}-{n}")
            for n, sub in enumerate(template.sub_items, start=1)
        ]
        components.append(Component(
            name=template.name,
            weight=template.weight,
            max_score=template.max_score,
            best_of=template.best_of,
            sub_items=sub_items,
            entity_id=component_id,
        ))
    return components
