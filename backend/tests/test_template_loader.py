from app.config import get_settings
from app.models.template import PremadeTemplate
from app.services import template_loader


def test_bundled_templates_load(db):
    loaded = template_loader.load_premade_templates(db, get_settings().premade_templates_dir)

    assert {t.id for t in loaded} == {"birthday-balloons", "thank-you-flowers", "holiday-snow"}
    assert len(template_loader.get_active_templates(db)) == 3


def test_reload_updates_existing_rows(db, tmp_path):
    (tmp_path / "party.yaml").write_text("id: party\nname: Party\ncategory: Fun\nsort_order: 2\n")
    template_loader.load_premade_templates(db, tmp_path)

    (tmp_path / "party.yaml").write_text("id: party\nname: Big Party\ncategory: Fun\nsort_order: 1\n")
    template_loader.load_premade_templates(db, tmp_path)

    assert db.query(PremadeTemplate).count() == 1
    template = db.get(PremadeTemplate, "party")
    assert template.name == "Big Party"
    assert template.sort_order == 1


def test_files_without_id_or_bad_yaml_are_skipped(db, tmp_path):
    (tmp_path / "no-id.yaml").write_text("name: Orphan\n")
    (tmp_path / "broken.yaml").write_text("id: [unclosed\n")
    (tmp_path / "ok.yaml").write_text("id: ok\nname: OK\ncategory: General\n")

    loaded = template_loader.load_premade_templates(db, tmp_path)

    assert [t.id for t in loaded] == ["ok"]


def test_missing_directory_loads_nothing(db, tmp_path):
    assert template_loader.load_premade_templates(db, tmp_path / "absent") == []


def test_active_templates_are_ordered_and_exclude_inactive(db):
    template_loader.create_template(db, {"id": "b", "name": "Bee", "category": "X", "sort_order": 2})
    template_loader.create_template(db, {"id": "a", "name": "Ant", "category": "X", "sort_order": 1})
    template_loader.create_template(db, {"id": "z", "name": "Zed", "category": "X", "is_active": False})

    assert [t.id for t in template_loader.get_active_templates(db)] == ["a", "b"]
    assert template_loader.get_active_template(db, "z") is None


def test_create_generates_id_when_missing(db):
    template = template_loader.create_template(db, {"id": None, "name": "Anon", "category": "X"})

    assert template.id
    assert template.is_active is True


def test_update_and_deactivate(db):
    template_loader.create_template(db, {"id": "t", "name": "Old", "category": "X"})

    updated = template_loader.update_template(db, "t", {"name": "New", "category": "Y"})
    assert updated.name == "New"
    assert updated.category == "Y"

    assert template_loader.deactivate_template(db, "t") is True
    assert db.get(PremadeTemplate, "t").is_active is False

    assert template_loader.update_template(db, "missing", {"name": "x"}) is None
    assert template_loader.deactivate_template(db, "missing") is False
