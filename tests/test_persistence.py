import os

import pytest

from tracksem.core.catalog import build_components, find_template
from tracksem.core.entities import Component, Course, SubItem
from tracksem.core.enums import ComponentField
from tracksem.core.exceptions import ConfigurationError, PersistenceError, ValidationError
from tracksem.persistence import (
    CourseRepository,
    ComponentRepository,
    DatabaseFactory,
    SCHEMA_VERSION,
    SQLiteDatabase,
    SubItemRepository,
    apply_schema,
    current_version,
)
from tracksem.persistence import database as database_module
from tracksem.persistence.repositories import parse_component_field, parse_sub_item_field


def _course(course_id="course-1", user_id="user-alice", template="dsa"):
    return Course(
        name="DSA",
        full_name="Data Structures & Algorithms",
        color="#f472b6",
        user_id=user_id,
        template=template,
        components=build_components(course_id, find_template(template)),
        entity_id=course_id,
    )


def _count(database, table):
    return database.execute_query(f"SELECT COUNT(*) AS n FROM {table}")[0]["n"]


def test_sqlite_database_creates_parent_directories(tmp_path):
    path = tmp_path / "nested" / "dir" / "tracksem.db"

    SQLiteDatabase(str(path))

    assert os.path.exists(path)


def test_apply_schema_is_idempotent(tmp_path):
    db = SQLiteDatabase(str(tmp_path / "tracksem.db"))

    assert current_version(db) == 0
    assert apply_schema(db) == SCHEMA_VERSION
    assert apply_schema(db) == SCHEMA_VERSION
    assert _count(db, "schema_migrations") == 1
    for table in ("courses", "components", "sub_items"):
        assert db.table_exists(table)


def test_driver_errors_surface_as_persistence_error(database):
    with pytest.raises(PersistenceError):
        database.execute_query("SELECT * FROM no_such_table")
    with pytest.raises(PersistenceError):
        database.execute_transaction([
            ("INSERT INTO components (id, course_id, name) VALUES (?, ?, ?)", ("c-1", "missing-course", "Orphan")),
        ])


def test_database_factory(tmp_path):
    db = DatabaseFactory.create_database("SQLite", database_path=str(tmp_path / "f.db"))

    assert isinstance(db, SQLiteDatabase)
    with pytest.raises(ConfigurationError):
        DatabaseFactory.create_database("oracle")


def test_postgresql_requires_driver(monkeypatch):
    monkeypatch.setattr(database_module, "PSYCOPG2_AVAILABLE", False)

    with pytest.raises(ConfigurationError):
        DatabaseFactory.create_database("postgresql", host="db.example")


def test_postgresql_rewrites_placeholders():
    query = "SELECT * FROM courses WHERE id = ? AND user_id = ?"

    assert database_module.PostgreSQLDatabase._adapt(query) == "SELECT * FROM courses WHERE id = %s AND user_id = %s"


def test_course_tree_round_trip(database):
    repo = CourseRepository(database)
    course = _course()
    repo.insert_with_components(course)

    loaded = repo.find_by_id("course-1", "user-alice")

    assert loaded.to_dict() == course.to_dict()
    assert loaded.template == "dsa"
    assert loaded.user_id == "user-alice"


def test_courses_are_scoped_to_their_owner(database):
    repo = CourseRepository(database)
    repo.insert_with_components(_course("course-1", "user-alice"))
    repo.insert_with_components(_course("course-2", "user-bob", template="la"))

    assert [c.id for c in repo.find_all_for_user("user-alice")] == ["course-1"]
    assert repo.find_by_id("course-1", "user-bob") is None
    assert repo.delete("course-1", "user-bob") is False
    assert repo.template_keys_for_user("user-bob") == {"la"}


def test_find_all_keeps_insertion_order(database):
    repo = CourseRepository(database)
    for n in range(3):
        repo.insert_with_components(_course(f"course-{n}", template="iot"))

    assert [c.id for c in repo.find_all_for_user("user-alice")] == ["course-0", "course-1", "course-2"]


def test_deleting_a_course_cascades(database):
    repo = CourseRepository(database)
    repo.insert_with_components(_course())
    assert _count(database, "sub_items") == 9

    assert repo.delete("course-1", "user-alice") is True

    assert _count(database, "components") == 0
    assert _count(database, "sub_items") == 0


def test_replace_components_rebuilds_tree(database):
    repo = CourseRepository(database)
    repo.insert_with_components(_course())
    ComponentRepository(database).update_field("course-1-1", ComponentField.SCORE, 77)

    repo.replace_components("course-1", build_components("course-1", find_template("dsa")))

    assert repo.find_by_id("course-1", "user-alice").to_dict() == _course().to_dict()


def test_component_repository_appends_and_updates(database):
    CourseRepository(database).insert_with_components(_course(template="iot"))
    components = ComponentRepository(database)
    component = Component("Bonus", weight=5, entity_id="course-1-bonus")

    components.insert("course-1", component)
    components.update_field("course-1-bonus", ComponentField.BEST_OF, 2)

    loaded = CourseRepository(database).find_by_id("course-1", "user-alice")
    assert loaded.components[-1].id == "course-1-bonus"
    assert loaded.components[-1].best_of == 2
    assert components.find_by_id("course-1-bonus", "user-bob") is None


def test_sub_item_insert_clears_direct_score(database):
    CourseRepository(database).insert_with_components(_course(template="iot"))
    components = ComponentRepository(database)
    sub_items = SubItemRepository(database)
    components.update_field("course-1-1", ComponentField.SCORE, 64)

    sub_items.insert("course-1-1", SubItem("Midsem 1", entity_id="s-1"))
    sub_items.insert("course-1-1", SubItem("Midsem 2", entity_id="s-2"))

    component = components.find_by_id("course-1-1", "user-alice")
    assert component.score is None
    assert [s.id for s in component.sub_items] == ["s-1", "s-2"]
    assert sub_items.count_for_component("course-1-1") == 2
    assert sub_items.find_component_id("s-2", "user-alice") == "course-1-1"
    assert sub_items.find_component_id("s-2", "user-bob") is None

    assert sub_items.delete("s-1") is True
    assert sub_items.count_for_component("course-1-1") == 1


def test_unknown_fields_are_validation_errors():
    with pytest.raises(ValidationError):
        parse_component_field("max_score")
    with pytest.raises(ValidationError):
        parse_sub_item_field("bestOf")


def test_course_delete_is_always_owner_scoped(database):
    repo = CourseRepository(database)
    repo.insert_with_components(_course())

    with pytest.raises(TypeError):
        repo.delete("course-1")
    assert repo.delete("course-1", "user-bob") is False
    assert repo.find_by_id("course-1", "user-alice") is not None
    assert repo.delete("course-1", "user-alice") is True
    assert repo.find_by_id("course-1", "user-alice") is None
