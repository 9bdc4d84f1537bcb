"""
Grade projection: turns a course's partly-filled score tree into a
percentage and a letter grade.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .entities import Component, Course


PLACEHOLDER_GRADE = "—"

# (threshold, letter, color), highest first
GRADE_SCALE: List[Tuple[float, str, str]] = [
    (90, "A", "#4ade80"),
    (85, "A-", "#86efac"),
    (80, "B", "#60a5fa"),
    (75, "B-", "#93c5fd"),
    (70, "C", "#fbbf24"),
    (65, "C-", "#fcd34d"),
    (60, "D", "#fb923c"),
]
FAILING_GRADE = ("F", "#f87171")
PLACEHOLDER_COLOR = "#6b7280"


@dataclass(frozen=True)
class Projection:
    """Projected grade of a course over its filled components."""
    grade: Optional[float]
    filled: int
    total: int
    total_weight: float = 0.0

    @property
    def letter(self) -> str:
        return letter_grade(self.grade)

    @property
    def color(self) -> str:
        return grade_color(self.grade)

    def to_dict(self):
        return {
            'grade': self.grade,
            'letter': self.letter,
            'color': self.color,
            'filled': self.filled,
            'total': self.total,
            'totalWeight': self.total_weight,
        }


def component_percentage(component: Component) -> Optional[float]:
    """
    Compute the effective percentage (0-100) for a component.

    With sub-items, this is the mean of the filled sub-item percentages,
    restricted to the best ``best_of`` of them when that is set and
    smaller than the filled count. Without sub-items it is
    score / max_score. Returns None when nothing is filled.
    """
    if component.has_sub_items:
        filled = [
            s.score / s.max_score * 100
            for s in component.sub_items
            if s.score is not None
        ]
        if not filled:
            return None

        if component.best_of and component.best_of < len(filled):
            filled = sorted(filled, reverse=True)[:component.best_of]

        return sum(filled) / len(filled)

    if component.score is None:
        return None
    return component.score / component.max_score * 100


def project_course(course: Course) -> Projection:
    """
    Weighted average over filled components, renormalized over the filled
    weight only. A course with zero filled weight has no grade.
    """
    components = course.components
    weighted_sum = 0.0
    filled_weight = 0.0
    filled = 0

    for component in components:
        pct = component_percentage(component)
        if pct is not None:
            weighted_sum += pct * (component.weight / 100)
            filled_weight += component.weight
            filled += 1

    weight = total_weight(course)
    if filled_weight == 0:
        return Projection(grade=None, filled=0, total=len(components), total_weight=weight)

    grade = weighted_sum / filled_weight * 100
    return Projection(grade=grade, filled=filled, total=len(components), total_weight=weight)


def total_weight(course: Course) -> float:
    """Sum of declared weights; not required to be 100."""
    return sum(c.weight for c in course.components)


def letter_grade(grade: Optional[float]) -> str:
    """Letter grade scale: A, A-, B, B-, C, C-, D, F."""
    if grade is None:
        return PLACEHOLDER_GRADE
    for threshold, letter, _ in GRADE_SCALE:
        if grade >= threshold:
            return letter
    return FAILING_GRADE[0]


def grade_color(grade: Optional[float]) -> str:
    """Accent color for the grade tier."""
    if grade is None:
        return PLACEHOLDER_COLOR
    for threshold, _, color in GRADE_SCALE:
        if grade >= threshold:
            return color
    return FAILING_GRADE[1]
