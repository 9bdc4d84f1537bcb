"""
Client-side cache of a user's courses.

Edits are applied to the local tree first and then sent to the API, and
derived percentages are recomputed from the cached tree on every read.
"""

import uuid
from typing import Any, Dict, List, Optional

import requests

from .core.catalog import NEW_COMPONENT_NAME
from .core.entities import Course, Component, SubItem
from .core.exceptions import NetworkError
from .core.grading import Projection, component_percentage, project_course, total_weight


def generate_id() -> str:
    return str(uuid.uuid4())


class GradesStore:
    """Mirror of the server's course tree for one signed-in user."""

    def __init__(self, base_url: str, access_token: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: float = 10):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self.session = session or requests.Session()
        if access_token:
            self.session.headers.update({"Authorization": f"Bearer {access_token}"})
        self.courses: List[Course] = []
        self.loaded = False

    def _api(self, path: str, method: str, body: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self.session.request(
                method,
                f"{self._base_url}{path}",
                json=body,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise NetworkError(f"{method} {path} failed: {e}")

        if response.status_code >= 400:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = response.text
            raise NetworkError(
                f"{method} {path} returned {response.status_code}: {detail}",
                details={"status": response.status_code},
            )
        try:
            return response.json()
        except ValueError:
            return None

    def reset(self) -> None:
        """Clear all state; call on sign-out so the next user starts fresh."""
        self.courses = []
        self.loaded = False

    def load(self) -> None:
        """Load all courses once."""
        if self.loaded:
            return
        self.reload()
        self.loaded = True

    def reload(self) -> None:
        """Force a reload from the server."""
        self.courses = [Course.from_dict(c) for c in self._api("/api/courses", "GET")]

    def get_course(self, course_id: str) -> Optional[Course]:
        for course in self.courses:
            if course.id == course_id:
                return course
        return None

    def _get_comp(self, course_id: str, component_id: str) -> Optional[Component]:
        course = self.get_course(course_id)
        return course.get_component(component_id) if course else None

    def _get_sub(self, course_id: str, component_id: str, sub_item_id: str) -> Optional[SubItem]:
        component = self._get_comp(course_id, component_id)
        return component.get_sub_item(sub_item_id) if component else None

    # Courses

    def add_course(self, name: str, full_name: str, color: str) -> Course:
        """Add a new course with default components."""
        created = Course.from_dict(
            self._api("/api/courses", "POST", {"name": name, "fullName": full_name, "color": color})
        )
        self.courses = self.courses + [created]
        return created

    def delete_course(self, course_id: str) -> None:
        self._api("/api/courses", "DELETE", {"id": course_id})
        self.courses = [c for c in self.courses if c.id != course_id]

    def seed(self, branch: str, semester: int) -> None:
        """Seed catalog courses and replace the cache with the result."""
        result = self._api("/api/courses/seed", "POST", {"branch": branch, "semester": semester})
        self.courses = [Course.from_dict(c) for c in result]
        self.loaded = True

    def reset_course(self, course_id: str) -> None:
        self._api(f"/api/courses/{course_id}/reset", "POST")
        self.reload()

    # Direct score (top-level)

    def update_score(self, course_id: str, component_id: str, score: Optional[float]) -> None:
        component = self._get_comp(course_id, component_id)
        if component is None:
            return
        component.set_score(score)
        self._api("/api/components", "PATCH", {"id": component_id, "field": "score", "value": score})

    # Sub-item scores

    def update_sub_score(self, course_id: str, component_id: str, sub_item_id: str,
                         score: Optional[float]) -> None:
        sub_item = self._get_sub(course_id, component_id, sub_item_id)
        if sub_item is None:
            return
        sub_item.set_score(score)
        self._api("/api/sub-items", "PATCH", {"id": sub_item_id, "field": "score", "value": score})

    def update_sub_max_score(self, course_id: str, component_id: str, sub_item_id: str,
                             max_score: float) -> None:
        sub_item = self._get_sub(course_id, component_id, sub_item_id)
        if sub_item is None:
            return
        sub_item.set_max_score(max_score)
        self._api("/api/sub-items", "PATCH", {"id": sub_item_id, "field": "maxScore", "value": max_score})

    def update_sub_name(self, course_id: str, component_id: str, sub_item_id: str, name: str) -> None:
        sub_item = self._get_sub(course_id, component_id, sub_item_id)
        if sub_item is None:
            return
        sub_item.set_name(name)
        self._api("/api/sub-items", "PATCH", {"id": sub_item_id, "field": "name", "value": name})

    def add_sub_item(self, course_id: str, component_id: str) -> Optional[SubItem]:
        component = self._get_comp(course_id, component_id)
        if component is None:
            return None
        sub_item = SubItem(
            name=f"{component.name} {len(component.sub_items) + 1}",
            max_score=component.max_score,
            entity_id=f"{component_id}-{generate_id()}",
        )
        component.add_sub_item(sub_item)
        self._api("/api/sub-items", "POST", {
            "componentId": component_id,
            "id": sub_item.id,
            "name": sub_item.name,
            "maxScore": sub_item.max_score,
        })
        return sub_item

    def remove_sub_item(self, course_id: str, component_id: str, sub_item_id: str) -> None:
        """Remove a sub-item; the server clamps best-of the same way."""
        component = self._get_comp(course_id, component_id)
        if component is None:
            return
        component.remove_sub_item(sub_item_id)
        self._api("/api/sub-items", "DELETE", {"id": sub_item_id, "componentId": component_id})

    def update_best_of(self, course_id: str, component_id: str, best_of: Optional[int]) -> None:
        component = self._get_comp(course_id, component_id)
        if component is None:
            return
        component.set_best_of(best_of)
        self._api("/api/components", "PATCH", {"id": component_id, "field": "bestOf", "value": best_of})

    # Component-level

    def update_weight(self, course_id: str, component_id: str, weight: float) -> None:
        component = self._get_comp(course_id, component_id)
        if component is None:
            return
        component.set_weight(weight)
        self._api("/api/components", "PATCH", {"id": component_id, "field": "weight", "value": weight})

    def update_max_score(self, course_id: str, component_id: str, max_score: float) -> None:
        component = self._get_comp(course_id, component_id)
        if component is None:
            return
        component.set_max_score(max_score)
        self._api("/api/components", "PATCH", {"id": component_id, "field": "maxScore", "value": max_score})

    def update_name(self, course_id: str, component_id: str, name: str) -> None:
        component = self._get_comp(course_id, component_id)
        if component is None:
            return
        component.set_name(name)
        self._api("/api/components", "PATCH", {"id": component_id, "field": "name", "value": name})

    def add_component(self, course_id: str) -> Optional[Component]:
        course = self.get_course(course_id)
        if course is None:
            return None
        component = Component(
            name=NEW_COMPONENT_NAME,
            weight=0,
            max_score=100,
            entity_id=f"{course_id}-{generate_id()}",
        )
        course.add_component(component)
        self._api("/api/components", "POST", {"courseId": course_id, "id": component.id, "name": component.name})
        return component

    def remove_component(self, course_id: str, component_id: str) -> None:
        course = self.get_course(course_id)
        if course is None:
            return
        course.remove_component(component_id)
        self._api("/api/components", "DELETE", {"id": component_id})

    # Derived computations

    def projected_grade(self, course_id: str) -> Projection:
        course = self.get_course(course_id)
        if course is None:
            return Projection(grade=None, filled=0, total=0)
        return project_course(course)

    def component_pct(self, course_id: str, component_id: str) -> Optional[float]:
        component = self._get_comp(course_id, component_id)
        if component is None:
            return None
        return component_percentage(component)

    def total_weight(self, course_id: str) -> float:
        course = self.get_course(course_id)
        if course is None:
            return 0
        return total_weight(course)
