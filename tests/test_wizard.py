from __future__ import annotations

import pytest

from formbuilder.wizard import FormWizard, check_publishable, publish_form


@pytest.fixture
def wizard(draft_repo) -> FormWizard:
    return FormWizard(draft_repo.for_session("session"))


def build_feedback(wizard: FormWizard) -> None:
    wizard.set_details(" Feedback ", "Tell us")
    wizard.add_category("Contact")
    wizard.add_field()
    wizard.update_field(0, label="Name", type="text", category="Contact", required=True)
    wizard.add_field()
    wizard.update_field(1, label="Rating", type="selection")
    wizard.add_option(1, "Good")
    wizard.add_option(1, "Bad")


def test_draft_survives_new_wizard(draft_repo, wizard) -> None:
    build_feedback(wizard)
    reloaded = FormWizard(draft_repo.for_session("session"))
    form = reloaded.form_data
    assert form["topic"] == "Feedback"
    assert form["categories"] == ["Contact"]
    assert [field["label"] for field in form["fields"]] == ["Name", "Rating"]
    assert form["fields"][1]["selections"] == ["Good", "Bad"]


def test_category_add_is_idempotent_and_remove_clears_fields(wizard) -> None:
    build_feedback(wizard)
    wizard.add_category("Contact")
    wizard.add_category("  ")
    assert wizard.form_data["categories"] == ["Contact"]
    wizard.remove_category("Contact")
    form = wizard.form_data
    assert form["categories"] == []
    assert form["fields"][0]["category"] == ""


def test_remove_option_and_field(wizard) -> None:
    build_feedback(wizard)
    wizard.remove_option(1, "Good")
    assert wizard.form_data["fields"][1]["selections"] == ["Bad"]
    wizard.remove_field(0)
    assert [field["label"] for field in wizard.form_data["fields"]] == ["Rating"]


def test_out_of_range_index(wizard) -> None:
    with pytest.raises(IndexError):
        wizard.update_field(0, label="x")
    with pytest.raises(IndexError):
        wizard.remove_field(3)


def test_unknown_type_is_rejected(wizard) -> None:
    wizard.add_field()
    with pytest.raises(ValueError):
        wizard.update_field(0, type="slider")


def test_switching_to_array_sets_default_config(wizard) -> None:
    wizard.add_field()
    assert wizard.form_data["fields"][0]["array_config"] is None
    wizard.update_field(0, label="Tags", type="array")
    assert wizard.form_data["fields"][0]["array_config"] == {
        "item_type": "string",
        "min_items": 1,
        "max_items": 10,
    }
    wizard.update_array_config(0, "max_items", "3")
    wizard.update_array_config(0, "item_type", "email")
    assert wizard.form_data["fields"][0]["array_config"] == {
        "item_type": "email",
        "min_items": 1,
        "max_items": 3,
    }
    with pytest.raises(ValueError):
        wizard.update_array_config(0, "pattern", "x")


def test_publish_settings_merge(wizard) -> None:
    wizard.update_publish_settings(share_setting="public")
    wizard.update_publish_settings(response_draft="Thanks")
    assert wizard.publish_data == {"share_setting": "public", "access_code": "", "response_draft": "Thanks"}


def test_empty_form_cannot_be_published(wizard) -> None:
    errors = wizard.check_publishable()
    assert errors[0] == "Form has no fields. Please add at least one field."
    assert "Private forms need an access code" in errors


def test_publish_stores_form_and_clears_draft(storage, wizard) -> None:
    build_feedback(wizard)
    wizard.update_publish_settings(share_setting="private", access_code="1234")
    form_id, errors = wizard.publish(storage)
    assert errors == []
    form = storage.forms.get_form(form_id)
    assert form["access_mode"] == "private"
    assert form["access_code"] == "1234"
    assert form["status"] == "active"
    assert wizard.form_data["fields"] == []


def test_failed_publish_keeps_draft(storage, wizard) -> None:
    wizard.set_details("Only a topic", "")
    form_id, errors = wizard.publish(storage)
    assert form_id is None
    assert errors
    assert wizard.form_data["topic"] == "Only a topic"
    assert storage.forms.list_forms() == []


def test_publish_form_normalizes_input(storage, feedback_form_data, public_settings) -> None:
    form_id, errors = publish_form(storage, feedback_form_data, public_settings)
    assert errors == []
    assert storage.forms.get_form(form_id)["topic"] == "Feedback"


def test_check_publishable_combines_errors(feedback_form_data) -> None:
    errors = check_publishable(feedback_form_data, {"share_setting": "nobody"})
    assert errors == ["Share setting must be public or private (nobody)"]
