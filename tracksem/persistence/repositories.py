"""
Repository pattern implementations for data access.

Rows are owned through their course: a component or sub-item is only
visible to the user that owns the course above it.
"""

from abc import ABC
from typing import Any, Dict, Iterable, List, Optional, Set

from ..core.entities import Course, Component, SubItem
from ..core.enums import ComponentField, SubItemField
from ..core.exceptions import ValidationError
from .database import DatabaseManager


COMPONENT_COLUMNS: Dict[ComponentField, str] = {
    ComponentField.SCORE: "score",
    ComponentField.WEIGHT: "weight",
    ComponentField.MAX_SCORE: "max_score",
    ComponentField.NAME: "name",
    ComponentField.BEST_OF: "best_of",
}

SUB_ITEM_COLUMNS: Dict[SubItemField, str] = {
    SubItemField.SCORE: "score",
    SubItemField.MAX_SCORE: "max_score",
    SubItemField.NAME: "name",
}


def parse_component_field(field: str) -> ComponentField:
    try:
        return ComponentField(field)
    except ValueError:
        raise ValidationError(f"Unknown component field: {field!r}")


def parse_sub_item_field(field: str) -> SubItemField:
    try:
        return SubItemField(field)
    except ValueError:
        raise ValidationError(f"Unknown sub-item field: {field!r}")


def _sub_item_from_row(row: Dict[str, Any]) -> SubItem:
    return SubItem(
        name=row["name"],
        score=row["score"],
        max_score=row["max_score"],
        entity_id=row["id"],
    )


def _component_from_row(row: Dict[str, Any], sub_items: List[SubItem]) -> Component:
    return Component(
        name=row["name"],
        weight=row["weight"],
        max_score=row["max_score"],
        score=row["score"],
        best_of=row["best_of"],
        sub_items=sub_items,
        entity_id=row["id"],
    )


def _insert_component_query(course_id: str, component: Component, sort_order: int) -> tuple:
    return (
        """
            INSERT INTO components (id, course_id, name, weight, max_score, score, best_of, sort_order)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (component.id, course_id, component.name, component.weight,
         component.max_score, component.score, component.best_of, sort_order),
    )


def _insert_sub_item_query(component_id: str, sub_item: SubItem, sort_order: int) -> tuple:
    return (
        """
            INSERT INTO sub_items (id, component_id, name, score, max_score, sort_order)
            VALUES (?, ?, ?, ?, ?, ?)
        """,
        (sub_item.id, component_id, sub_item.name, sub_item.score, sub_item.max_score, sort_order),
    )


def _component_tree_queries(course_id: str, components: Iterable[Component]) -> List[tuple]:
    queries = []
    for ci, component in enumerate(components):
        queries.append(_insert_component_query(course_id, component, ci))
        for si, sub_item in enumerate(component.sub_items):
            queries.append(_insert_sub_item_query(component.id, sub_item, si))
    return queries


class BaseRepository(ABC):
    """Base repository with the row operations shared by every table."""

    table: str = ""
    parent_column: str = ""

    def __init__(self, database: DatabaseManager):
        self._database = database

    def delete(self, entity_id: str) -> bool:
        """Delete a row by ID; dependent rows cascade."""
        query = f"DELETE FROM {self.table} WHERE id = ?"
        return self._database.execute_update(query, (entity_id,)) > 0

    def next_sort_order(self, parent_id: str) -> int:
        """Position after the last row under the same parent."""
        query = (
            f"SELECT COALESCE(MAX(sort_order), -1) + 1 AS next "
            f"FROM {self.table} WHERE {self.parent_column} = ?"
        )
        results = self._database.execute_query(query, (parent_id,))
        return int(results[0]["next"]) if results else 0

    def _update_column(self, entity_id: str, column: str, value: Any) -> bool:
        query = f"UPDATE {self.table} SET {column} = ? WHERE id = ?"
        return self._database.execute_update(query, (value, entity_id)) > 0


class CourseRepository(BaseRepository):
    """Repository for courses and their full component tree."""

    table = "courses"
    parent_column = "user_id"

    def find_all_for_user(self, user_id: str) -> List[Course]:
        """All courses of a user with nested components and sub-items."""
        course_rows = self._database.execute_query(
            "SELECT * FROM courses WHERE user_id = ? ORDER BY sort_order, created_at",
            (user_id,),
        )
        component_rows = self._database.execute_query(
            """
                SELECT c.* FROM components c
                JOIN courses co ON co.id = c.course_id
                WHERE co.user_id = ?
                ORDER BY c.course_id, c.sort_order
            """,
            (user_id,),
        )
        sub_item_rows = self._database.execute_query(
            """
                SELECT s.* FROM sub_items s
                JOIN components c ON c.id = s.component_id
                JOIN courses co ON co.id = c.course_id
                WHERE co.user_id = ?
                ORDER BY s.component_id, s.sort_order
            """,
            (user_id,),
        )
        return self._assemble(course_rows, component_rows, sub_item_rows)

    def find_by_id(self, course_id: str, user_id: str) -> Optional[Course]:
        """A single course of the user, or None."""
        course_rows = self._database.execute_query(
            "SELECT * FROM courses WHERE id = ? AND user_id = ?",
            (course_id, user_id),
        )
        if not course_rows:
            return None
        component_rows = self._database.execute_query(
            "SELECT * FROM components WHERE course_id = ? ORDER BY sort_order",
            (course_id,),
        )
        sub_item_rows = self._database.execute_query(
            """
                SELECT s.* FROM sub_items s
                JOIN components c ON c.id = s.component_id
                WHERE c.course_id = ?
                ORDER BY s.component_id, s.sort_order
            """,
            (course_id,),
        )
        return self._assemble(course_rows, component_rows, sub_item_rows)[0]

    def template_keys_for_user(self, user_id: str) -> Set[str]:
        """Catalog template keys the user already has courses for."""
        rows = self._database.execute_query(
            "SELECT template FROM courses WHERE user_id = ? AND template IS NOT NULL",
            (user_id,),
        )
        return {row["template"] for row in rows}

    def insert_with_components(self, course: Course) -> Course:
        """Insert a course and its component tree in one transaction."""
        queries = [(
            """
                INSERT INTO courses (id, user_id, name, full_name, color, template, sort_order)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (course.id, course.user_id, course.name, course.full_name, course.color,
             course.template, self.next_sort_order(course.user_id)),
        )]
        queries.extend(_component_tree_queries(course.id, course.components))
        self._database.execute_transaction(queries)
        return course

    def delete(self, course_id: str, user_id: str) -> bool:
        """Delete a user's course; components and sub-items cascade."""
        affected = self._database.execute_update(
            "DELETE FROM courses WHERE id = ? AND user_id = ?",
            (course_id, user_id),
        )
        return affected > 0

    def replace_components(self, course_id: str, components: List[Component]) -> None:
        """Swap a course's whole component tree in one transaction."""
        queries = [("DELETE FROM components WHERE course_id = ?", (course_id,))]
        queries.extend(_component_tree_queries(course_id, components))
        self._database.execute_transaction(queries)

    def _assemble(self, course_rows: List[Dict[str, Any]], component_rows: List[Dict[str, Any]],
                  sub_item_rows: List[Dict[str, Any]]) -> List[Course]:
        subs_by_component: Dict[str, List[SubItem]] = {}
        for row in sub_item_rows:
            subs_by_component.setdefault(row["component_id"], []).append(_sub_item_from_row(row))

        components_by_course: Dict[str, List[Component]] = {}
        for row in component_rows:
            component = _component_from_row(row, subs_by_component.get(row["id"], []))
            components_by_course.setdefault(row["course_id"], []).append(component)

        return [
            Course(
                name=row["name"],
                full_name=row["full_name"],
                color=row["color"],
                user_id=row["user_id"],
                template=row["template"],
                components=components_by_course.get(row["id"], []),
                entity_id=row["id"],
            )
            for row in course_rows
        ]


class ComponentRepository(BaseRepository):
    """Repository for grading components."""

    table = "components"
    parent_column = "course_id"

    def find_by_id(self, component_id: str, user_id: str) -> Optional[Component]:
        """A component with its sub-items, if the user owns its course."""
        rows = self._database.execute_query(
            """
                SELECT c.* FROM components c
                JOIN courses co ON co.id = c.course_id
                WHERE c.id = ? AND co.user_id = ?
            """,
            (component_id, user_id),
        )
        if not rows:
            return None
        sub_item_rows = self._database.execute_query(
            "SELECT * FROM sub_items WHERE component_id = ? ORDER BY sort_order",
            (component_id,),
        )
        return _component_from_row(rows[0], [_sub_item_from_row(r) for r in sub_item_rows])

    def insert(self, course_id: str, component: Component) -> Component:
        """Append a component (and any sub-items) at the end of a course."""
        queries = _component_tree_queries(course_id, [component])
        query, params = queries[0]
        queries[0] = (query, params[:-1] + (self.next_sort_order(course_id),))
        self._database.execute_transaction(queries)
        return component

    def update_field(self, component_id: str, field: ComponentField, value: Any) -> bool:
        return self._update_column(component_id, COMPONENT_COLUMNS[field], value)


class SubItemRepository(BaseRepository):
    """Repository for sub-items."""

    table = "sub_items"
    parent_column = "component_id"

    def find_component_id(self, sub_item_id: str, user_id: str) -> Optional[str]:
        """ID of the sub-item's component, if the user owns the course above it."""
        rows = self._database.execute_query(
            """
                SELECT s.component_id FROM sub_items s
                JOIN components c ON c.id = s.component_id
                JOIN courses co ON co.id = c.course_id
                WHERE s.id = ? AND co.user_id = ?
            """,
            (sub_item_id, user_id),
        )
        return rows[0]["component_id"] if rows else None

    def insert(self, component_id: str, sub_item: SubItem) -> SubItem:
        """Append a sub-item and clear the component's direct score."""
        query, params = _insert_sub_item_query(
            component_id, sub_item, self.next_sort_order(component_id))
        self._database.execute_transaction([
            (query, params),
            ("UPDATE components SET score = NULL WHERE id = ?", (component_id,)),
        ])
        return sub_item

    def update_field(self, sub_item_id: str, field: SubItemField, value: Any) -> bool:
        return self._update_column(sub_item_id, SUB_ITEM_COLUMNS[field], value)

    def count_for_component(self, component_id: str) -> int:
        results = self._database.execute_query(
            "SELECT COUNT(*) AS n FROM sub_items WHERE component_id = ?",
            (component_id,),
        )
        return int(results[0]["n"]) if results else 0
