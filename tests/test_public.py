from __future__ import annotations

import pytest


def create_form(client, form_data, publish_data) -> str:
    response = client.post("/api/forms", json={"formData": form_data, "publishData": publish_data})
    assert response.status_code == 200
    return response.json()["formId"]


@pytest.fixture
def form_id(client, feedback_form_data, public_settings) -> str:
    return create_form(client, feedback_form_data, public_settings)


def test_unknown_form_page(client) -> None:
    response = client.get("/f/nope")
    assert response.status_code == 404
    assert "Form not found" in response.text


def test_form_page_groups_fields(client, form_id) -> None:
    response = client.get(f"/f/{form_id}")
    assert response.status_code == 200
    html = response.text
    assert "<h1>Feedback</h1>" in html
    assert html.index("<legend>Uncategorized</legend>") < html.index("<legend>Contact</legend>")
    assert html.index("<legend>Contact</legend>") < html.index("<legend>Opinion</legend>")
    assert 'name="tags__new"' in html
    assert '<option value="Good">Good</option>' in html


def test_add_and_remove_array_items(client, form_id) -> None:
    response = client.post(
        f"/f/{form_id}", data={"action": "add:tags", "tags": ["one"], "tags__new": "two", "name": "Ada"}
    )
    assert response.status_code == 200
    html = response.text
    assert '<input type="hidden" name="tags" value="one">' in html
    assert '<input type="hidden" name="tags" value="two">' in html
    assert 'value="Ada"' in html

    response = client.post(f"/f/{form_id}", data={"action": "remove:tags:0", "tags": ["one", "two"]})
    html = response.text
    assert 'value="one"' not in html
    assert '<input type="hidden" name="tags" value="two">' in html


def test_add_past_max_items_warns(client, form_id) -> None:
    response = client.post(
        f"/f/{form_id}", data={"action": "add:tags", "tags": ["a", "b", "c"], "tags__new": "d"}
    )
    assert "You can add at most 3 items" in response.text
    assert 'name="tags__new" value="d"' in response.text


def test_add_to_unknown_field(client, form_id) -> None:
    assert client.post(f"/f/{form_id}", data={"action": "add:name"}).status_code == 400
    assert client.post(f"/f/{form_id}", data={"action": "add:ghost"}).status_code == 400


def test_submit_with_missing_required_field(client, form_id) -> None:
    response = client.post(f"/f/{form_id}", data={"action": "submit", "email": "a@b.c"})
    assert response.status_code == 200
    assert "Please fill in the following required fields: Name" in response.text
    assert 'value="a@b.c"' in response.text


def test_submit_shows_response_message(client, form_id) -> None:
    response = client.post(f"/f/{form_id}", data={"action": "submit", "name": "Ada", "tags": ["x"]})
    assert response.status_code == 200
    assert "Thanks!" in response.text
    submissions = client.get(f"/api/forms/{form_id}/submissions").json()
    assert submissions[0]["data"] == {"name": "Ada", "tags": ["x"]}


def test_reset_clears_values(client, form_id) -> None:
    response = client.post(f"/f/{form_id}", data={"action": "reset", "name": "Ada", "tags": ["x"]})
    assert 'value="Ada"' not in response.text
    assert 'name="tags" value="x"' not in response.text


def test_inactive_form_is_read_only(client, form_id) -> None:
    client.post(f"/admin/forms/{form_id}/stop")
    response = client.get(f"/f/{form_id}")
    assert "This form is not accepting responses" in response.text
    assert "<form method=\"post\" action=\"/f/" not in response.text

    response = client.post(f"/f/{form_id}", data={"action": "submit", "name": "Ada"})
    assert "This form is not accepting responses" in response.text
    assert client.get(f"/api/forms/{form_id}/submissions").json() == []


def test_private_form_access(client, feedback_form_data) -> None:
    form_id = create_form(
        client, feedback_form_data, {"share_setting": "private", "access_code": "letmein"}
    )
    page = client.get(f"/f/{form_id}")
    assert "Enter the access code" in page.text
    assert client.post(f"/f/{form_id}", data={"action": "submit", "name": "Ada"}).status_code == 403

    wrong = client.post(f"/f/{form_id}/access", data={"access_code": "nope"})
    assert wrong.status_code == 403
    assert "The access code is not correct" in wrong.text

    unlocked = client.post(f"/f/{form_id}/access", data={"access_code": "letmein"})
    assert unlocked.status_code == 200
    assert "<h1>Feedback</h1>" in unlocked.text
    assert 'name="tags__new"' in unlocked.text


def test_rejected_upload_rerenders_form(client, image_form_data) -> None:
    image_id = create_form(client, image_form_data, {"share_setting": "public"})
    response = client.post(
        f"/f/{image_id}",
        data={"action": "submit", "name": "Ada"},
        files=[("pic", ("notes.txt", b"hello", "text/plain"))],
    )
    assert response.status_code == 400
    assert response.headers["content-type"].startswith("text/html")
    assert "Only image files can be uploaded" in response.text
    assert "<h1>Photos</h1>" in response.text
    assert 'value="Ada"' in response.text
    assert client.get(f"/api/forms/{image_id}/submissions").json() == []
