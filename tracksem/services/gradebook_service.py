"""
Gradebook service: course, component and sub-item operations for a user.
"""

import logging
import uuid
from typing import Any, List, Optional

from ..core.catalog import (
    DEFAULT_TEMPLATE, DEFAULT_TEMPLATE_KEY, NEW_COMPONENT_NAME, build_components, find_template, get_courses,
)
from ..core.entities import Course, Component, SubItem, User
from ..core.enums import ComponentField, SubItemField
from ..core.exceptions import ResourceNotFoundError, ValidationError
from ..core.grading import Projection, project_course
from ..persistence import DatabaseManager, CourseRepository, ComponentRepository, SubItemRepository
from ..persistence.repositories import parse_component_field, parse_sub_item_field


logger = logging.getLogger(__name__)


class GradebookService:
    """
    Business rules over the course tree of each user.

    Every operation is scoped to the acting user. Rows that belong to
    someone else are reported as not found.
    """

    def __init__(self, database: DatabaseManager):
        self._database = database
        self._courses = CourseRepository(database)
        self._components = ComponentRepository(database)
        self._sub_items = SubItemRepository(database)

    # Courses

    def list_courses(self, user: User) -> List[Course]:
        return self._courses.find_all_for_user(user.id)

    def get_course(self, user: User, course_id: str) -> Course:
        course = self._courses.find_by_id(course_id, user.id)
        if course is None:
            raise ResourceNotFoundError("Course not found", details={"id": course_id})
        return course

    def add_course(self, user: User, name: str, full_name: str, color: str) -> Course:
        """Create a course with the default components."""
        if not name or not full_name or not color:
            raise ValidationError("Missing fields")

        course_id = str(uuid.uuid4())
        course = Course(
            name=name,
            full_name=full_name,
            color=color,
            user_id=user.id,
            template=DEFAULT_TEMPLATE_KEY,
            components=build_components(course_id, DEFAULT_TEMPLATE),
            entity_id=course_id,
        )
        self._courses.insert_with_components(course)
        logger.info("User %s added course %s (%s)", user.id, course.id, course.name)
        return course

    def seed_courses(self, user: User, branch: str, semester: int) -> List[Course]:
        """Create the catalog courses of a branch and semester the user does not have yet."""
        templates = get_courses(branch, semester)
        if not templates:
            raise ValidationError(
                "No courses found for this branch and this semester.",
                details={"branch": branch, "semester": semester},
            )

        existing = self._courses.template_keys_for_user(user.id)
        created = 0
        for template in templates:
            if template.key in existing:
                continue
            course_id = str(uuid.uuid4())
            self._courses.insert_with_components(Course(
                name=template.name,
                full_name=template.full_name,
                color=template.color,
                user_id=user.id,
                template=template.key,
                components=build_components(course_id, template.components),
                entity_id=course_id,
            ))
            created += 1

        logger.info("Seeded %d course(s) for user %s from %s/%s", created, user.id, branch, semester)
        return self.list_courses(user)

    def delete_course(self, user: User, course_id: str) -> None:
        if not course_id:
            raise ValidationError("Missing id")
        if not self._courses.delete(course_id, user.id):
            raise ResourceNotFoundError("Course not found", details={"id": course_id})
        logger.info("User %s deleted course %s", user.id, course_id)

    def reset_course(self, user: User, course_id: str) -> Course:
        """Drop all components and rebuild them from the course's template."""
        course = self.get_course(user, course_id)
        components = build_components(course.id, find_template(course.template))
        self._courses.replace_components(course.id, components)
        course.replace_components(components)
        logger.info("User %s reset course %s", user.id, course_id)
        return course

    def project(self, user: User, course_id: str) -> Projection:
        return project_course(self.get_course(user, course_id))

    # Components

    def _get_component(self, user: User, component_id: str) -> Component:
        component = self._components.find_by_id(component_id, user.id)
        if component is None:
            raise ResourceNotFoundError("Component not found", details={"id": component_id})
        return component

    def add_component(self, user: User, course_id: str, name: Optional[str] = None,
                      component_id: Optional[str] = None) -> Component:
        """Append a component with zero weight and a max score of 100."""
        if not course_id:
            raise ValidationError("Missing courseId")
        course = self.get_course(user, course_id)
        component = Component(
            name=name or NEW_COMPONENT_NAME,
            weight=0,
            max_score=100,
            entity_id=component_id or f"{course.id}-{uuid.uuid4()}",
        )
        self._components.insert(course.id, component)
        logger.info("User %s added component %s to course %s", user.id, component.id, course.id)
        return component

    def update_component(self, user: User, component_id: str, field: str, value: Any) -> Component:
        """Validate a field change through the entity, then persist it."""
        component_field = parse_component_field(field)
        component = self._get_component(user, component_id)

        if component_field is ComponentField.SCORE:
            component.set_score(value)
            stored = component.score
        elif component_field is ComponentField.WEIGHT:
            component.set_weight(value)
            stored = component.weight
        elif component_field is ComponentField.MAX_SCORE:
            component.set_max_score(value)
            stored = component.max_score
        elif component_field is ComponentField.NAME:
            component.set_name(value)
            stored = component.name
        else:
            component.set_best_of(value)
            stored = component.best_of

        self._components.update_field(component.id, component_field, stored)
        return component

    def delete_component(self, user: User, component_id: str) -> None:
        component = self._get_component(user, component_id)
        self._components.delete(component.id)
        logger.info("User %s deleted component %s", user.id, component_id)

    # Sub-items

    def add_sub_item(self, user: User, component_id: str, name: Optional[str] = None,
                     max_score: Optional[float] = None, sub_item_id: Optional[str] = None) -> SubItem:
        """
        Append a sub-item to a component.

        Defaults to "<component name> <n>" out of the component's max score.
        The component's direct score is cleared.
        """
        if not component_id:
            raise ValidationError("Missing componentId")
        component = self._get_component(user, component_id)
        sub_item = SubItem(
            name=name or f"{component.name} {len(component.sub_items) + 1}",
            max_score=component.max_score if max_score is None else max_score,
            entity_id=sub_item_id or f"{component.id}-{uuid.uuid4()}",
        )
        self._sub_items.insert(component.id, sub_item)
        logger.info("User %s added sub-item %s to component %s", user.id, sub_item.id, component.id)
        return sub_item

    def _get_sub_item(self, user: User, sub_item_id: str):
        component_id = self._sub_items.find_component_id(sub_item_id, user.id)
        if component_id is None:
            raise ResourceNotFoundError("Sub-item not found", details={"id": sub_item_id})
        component = self._get_component(user, component_id)
        return component, component.get_sub_item(sub_item_id)

    def update_sub_item(self, user: User, sub_item_id: str, field: str, value: Any) -> SubItem:
        sub_item_field = parse_sub_item_field(field)
        _, sub_item = self._get_sub_item(user, sub_item_id)

        if sub_item_field is SubItemField.SCORE:
            sub_item.set_score(value)
            stored = sub_item.score
        elif sub_item_field is SubItemField.MAX_SCORE:
            sub_item.set_max_score(value)
            stored = sub_item.max_score
        else:
            sub_item.set_name(value)
            stored = sub_item.name

        self._sub_items.update_field(sub_item.id, sub_item_field, stored)
        return sub_item

    def delete_sub_item(self, user: User, sub_item_id: str) -> int:
        """
        Remove a sub-item and return how many remain on its component.

        The component's best-of count is clamped to the remaining sub-items.
        """
        component, _ = self._get_sub_item(user, sub_item_id)
        best_of = component.best_of
        component.remove_sub_item(sub_item_id)

        self._sub_items.delete(sub_item_id)
        if component.best_of != best_of:
            self._components.update_field(component.id, ComponentField.BEST_OF, component.best_of)

        logger.info("User %s deleted sub-item %s", user.id, sub_item_id)
        return self._sub_items.count_for_component(component.id)
