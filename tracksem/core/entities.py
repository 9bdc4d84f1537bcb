"""
Core entities for TrackSem: courses, their grading components and sub-items.
"""

import math
import re
import uuid
from abc import ABC
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .exceptions import ValidationError


Number = Union[int, float]

_HEX_COLOR = re.compile(r'^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')


def _require_name(name: Any, what: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{what} name must be a non-empty string")
    return name.strip()


def _require_number(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{what} must be a number")
    if not math.isfinite(value):
        raise ValidationError(f"{what} must be a finite number")
    return value


def _validate_score(score: Any) -> Optional[Number]:
    if score is None:
        return None
    score = _require_number(score, "Score")
    if score < 0:
        raise ValidationError("Score cannot be negative")
    return score


def _validate_max_score(max_score: Any) -> Number:
    max_score = _require_number(max_score, "Max score")
    if max_score <= 0:
        raise ValidationError("Max score must be greater than zero")
    return max_score


@dataclass(frozen=True)
class User:
    """An account authenticated by the identity provider."""
    id: str
    email: Optional[str] = None


class AbstractEntity(ABC):
    """Base entity with an ID."""

    def __init__(self, entity_id: Optional[str] = None):
        self._id = entity_id or str(uuid.uuid4())

    @property
    def id(self) -> str:
        return self._id

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self._id}

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id})"

    def __repr__(self) -> str:
        return self.__str__()


class SubItem(AbstractEntity):
    """A single graded instance within a component, e.g. one quiz of two."""

    def __init__(self, name: str, max_score: Number = 100, score: Optional[Number] = None, **kwargs):
        super().__init__(**kwargs)
        self._name = _require_name(name, "Sub-item")
        self._max_score = _validate_max_score(max_score)
        self._score = _validate_score(score)

    @property
    def name(self) -> str:
        return self._name

    @property
    def score(self) -> Optional[Number]:
        return self._score

    @property
    def max_score(self) -> Number:
        return self._max_score

    def set_name(self, name: str) -> None:
        self._name = _require_name(name, "Sub-item")

    def set_score(self, score: Optional[Number]) -> None:
        self._score = _validate_score(score)

    def set_max_score(self, max_score: Number) -> None:
        self._max_score = _validate_max_score(max_score)

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'name': self._name,
            'score': self._score,
            'maxScore': self._max_score,
        })
        return base_dict

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SubItem':
        return cls(
            name=data['name'],
            max_score=data.get('maxScore', 100),
            score=data.get('score'),
            entity_id=data.get('id'),
        )


class Component(AbstractEntity):
    """
    A weighted grading category within a course.

    The effective percentage comes either from the component's own score or,
    when sub-items exist, from the sub-items. Never both: a direct score
    cannot be set while sub-items exist, and adding the first sub-item
    clears it.
    """

    def __init__(self, name: str, weight: Number = 0, max_score: Number = 100,
                 score: Optional[Number] = None, best_of: Optional[int] = None,
                 sub_items: Optional[List[SubItem]] = None, **kwargs):
        super().__init__(**kwargs)
        self._name = _require_name(name, "Component")
        self._weight = self._validate_weight(weight)
        self._max_score = _validate_max_score(max_score)
        self._sub_items: List[SubItem] = list(sub_items or [])
        self._best_of = self._validate_best_of(best_of)
        if score is not None and self._sub_items:
            raise ValidationError("A component with sub-items cannot also have a direct score")
        self._score = _validate_score(score)

    @staticmethod
    def _validate_weight(weight: Any) -> Number:
        weight = _require_number(weight, "Weight")
        if weight < 0:
            raise ValidationError("Weight cannot be negative")
        return weight

    @staticmethod
    def _validate_best_of(best_of: Any) -> Optional[int]:
        if best_of is None or best_of == 0:
            return None
        if isinstance(best_of, bool) or not isinstance(best_of, int):
            if isinstance(best_of, float) and best_of.is_integer():
                best_of = int(best_of)
            else:
                raise ValidationError("Best-of count must be a whole number")
        if best_of < 1:
            raise ValidationError("Best-of count must be at least 1")
        return best_of

    @property
    def name(self) -> str:
        return self._name

    @property
    def weight(self) -> Number:
        return self._weight

    @property
    def max_score(self) -> Number:
        return self._max_score

    @property
    def score(self) -> Optional[Number]:
        return self._score

    @property
    def best_of(self) -> Optional[int]:
        return self._best_of

    @property
    def sub_items(self) -> List[SubItem]:
        return list(self._sub_items)

    @property
    def has_sub_items(self) -> bool:
        return len(self._sub_items) > 0

    def set_name(self, name: str) -> None:
        self._name = _require_name(name, "Component")

    def set_weight(self, weight: Number) -> None:
        self._weight = self._validate_weight(weight)

    def set_max_score(self, max_score: Number) -> None:
        self._max_score = _validate_max_score(max_score)

    def set_score(self, score: Optional[Number]) -> None:
        """Set the directly-entered score."""
        if score is not None and self._sub_items:
            raise ValidationError("Scores for this component are entered per sub-item")
        self._score = _validate_score(score)

    def set_best_of(self, best_of: Optional[int]) -> None:
        self._best_of = self._validate_best_of(best_of)

    def get_sub_item(self, sub_item_id: str) -> Optional[SubItem]:
        for sub_item in self._sub_items:
            if sub_item.id == sub_item_id:
                return sub_item
        return None

    def add_sub_item(self, sub_item: SubItem) -> None:
        """Append a sub-item; the direct score no longer applies."""
        self._sub_items.append(sub_item)
        self._score = None

    def remove_sub_item(self, sub_item_id: str) -> bool:
        """
        Remove a sub-item and clamp best-of to the remaining count.

        Returns True when a sub-item was removed.
        """
        remaining = [s for s in self._sub_items if s.id != sub_item_id]
        if len(remaining) == len(self._sub_items):
            return False
        self._sub_items = remaining
        if self._best_of is not None and self._best_of > len(remaining):
            self._best_of = len(remaining) or None
        return True

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'name': self._name,
            'weight': self._weight,
            'maxScore': self._max_score,
            'score': self._score,
            'subItems': [s.to_dict() for s in self._sub_items] if self._sub_items else None,
            'bestOf': self._best_of,
        })
        return base_dict

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Component':
        return cls(
            name=data['name'],
            weight=data.get('weight', 0),
            max_score=data.get('maxScore', 100),
            score=data.get('score'),
            best_of=data.get('bestOf'),
            sub_items=[SubItem.from_dict(s) for s in data.get('subItems') or []],
            entity_id=data.get('id'),
        )


class Course(AbstractEntity):
    """A course owned by one user account, made of ordered components."""

    def __init__(self, name: str, full_name: str, color: str, user_id: Optional[str] = None,
                 template: Optional[str] = None, components: Optional[List[Component]] = None,
                 **kwargs):
        super().__init__(**kwargs)
        self._name = _require_name(name, "Course")
        self._full_name = _require_name(full_name, "Course full")
        self._color = self._validate_color(color)
        self._user_id = user_id
        self._template = template
        self._components: List[Component] = list(components or [])

    @staticmethod
    def _validate_color(color: Any) -> str:
        if not isinstance(color, str) or not _HEX_COLOR.match(color.strip()):
            raise ValidationError(f"Invalid color: {color!r}")
        return color.strip()

    @property
    def name(self) -> str:
        return self._name

    @property
    def full_name(self) -> str:
        return self._full_name

    @property
    def color(self) -> str:
        return self._color

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def template(self) -> Optional[str]:
        return self._template

    @property
    def components(self) -> List[Component]:
        return list(self._components)

    def get_component(self, component_id: str) -> Optional[Component]:
        for component in self._components:
            if component.id == component_id:
                return component
        return None

    def add_component(self, component: Component) -> None:
        self._components.append(component)

    def remove_component(self, component_id: str) -> bool:
        remaining = [c for c in self._components if c.id != component_id]
        removed = len(remaining) != len(self._components)
        self._components = remaining
        return removed

    def replace_components(self, components: List[Component]) -> None:
        self._components = list(components)

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'name': self._name,
            'fullName': self._full_name,
            'color': self._color,
            'components': [c.to_dict() for c in self._components],
        })
        return base_dict

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Course':
        return cls(
            name=data['name'],
            full_name=data['fullName'],
            color=data['color'],
            components=[Component.from_dict(c) for c in data.get('components') or []],
            entity_id=data.get('id'),
        )
