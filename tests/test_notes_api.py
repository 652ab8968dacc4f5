import uuid

import pytest
from sqlalchemy.exc import OperationalError

from app import ordering
from app.auth import create_access_token


def create(client, headers, title, **extra):
    r = client.post("/notes", headers=headers, json={"title": title, "content": f"{title} body", **extra})
    assert r.status_code == 201, r.text
    return r.json()


def listed(client, headers):
    r = client.get("/notes", headers=headers)
    assert r.status_code == 200
    return [(n["title"], n["order"]) for n in r.json()]


@pytest.fixture()
def alice(make_user, headers_for):
    user = make_user("alice@example.com")
    return user, headers_for(user)


@pytest.fixture()
def five_notes(client, alice):
    _, headers = alice
    return {title: create(client, headers, title) for title in ["A", "B", "C", "D", "E"]}


@pytest.mark.parametrize(
    "method, path, body",
    [
        ("get", "/notes", None),
        ("post", "/notes", {"title": "t", "content": "c"}),
        ("put", "/notes/order", {"noteIds": []}),
        ("patch", f"/notes/{uuid.uuid4()}/order", {"newOrder": 1}),
    ],
)
def test_requests_without_owner_are_rejected(client, method, path, body):
    kwargs = {"json": body} if body is not None else {}
    r = getattr(client, method)(path, **kwargs)
    assert r.status_code == 401


def test_bad_and_unknown_tokens_are_rejected(client):
    r = client.get("/notes", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401

    stranger = create_access_token(uuid.uuid4())
    r = client.get("/notes", headers={"Authorization": f"Bearer {stranger}"})
    assert r.status_code == 401


def test_create_appends_to_end(client, alice):
    _, headers = alice
    orders = [create(client, headers, title)["order"] for title in ["A", "B", "C"]]

    assert orders == [0, 1, 2]
    assert listed(client, headers) == [("A", 0), ("B", 1), ("C", 2)]


def test_create_applies_theme_defaults(client, alice):
    _, headers = alice
    note = create(client, headers, "A", theme={"backgroundColor": "#123456"})

    assert note["theme"]["backgroundColor"] == "#123456"
    assert note["theme"]["textColor"] == "#000000"
    assert note["status"] == "active"


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "   ", "content": "c"},
        {"title": "t", "content": ""},
        {"title": "t", "content": "c", "status": "deleted"},
        {"title": "t", "content": "c", "theme": {"textColor": "blue"}},
    ],
)
def test_create_validates_fields(client, alice, payload):
    _, headers = alice
    r = client.post("/notes", headers=headers, json=payload)
    assert r.status_code == 422


def test_notes_are_isolated_per_owner(client, alice, make_user, headers_for, five_notes):
    bob = make_user("bob@example.com")
    bob_headers = headers_for(bob)

    assert listed(client, bob_headers) == []
    r = client.get(f"/notes/{five_notes['A']['id']}", headers=bob_headers)
    assert r.status_code == 404
    assert create(client, bob_headers, "Z")["order"] == 0


def test_field_updates_do_not_touch_order(client, alice, five_notes):
    _, headers = alice
    note_id = five_notes["C"]["id"]

    r = client.patch(
        f"/notes/{note_id}",
        headers=headers,
        json={"title": "C2", "status": "completed", "theme": {"elevation": 9}},
    )

    assert r.status_code == 200
    body = r.json()
    assert body["order"] == 2
    assert body["title"] == "C2"
    assert body["theme"]["elevation"] == 9
    assert body["theme"]["backgroundColor"] == "#ffffff"


def test_update_ignores_order_field(client, alice, five_notes):
    _, headers = alice
    r = client.patch(f"/notes/{five_notes['A']['id']}", headers=headers, json={"order": 4})

    assert r.status_code == 200
    assert r.json()["order"] == 0


def test_delete_leaves_gap_without_renumbering(client, alice, five_notes):
    _, headers = alice
    r = client.delete(f"/notes/{five_notes['B']['id']}", headers=headers)

    assert r.status_code == 204
    assert listed(client, headers) == [("A", 0), ("C", 2), ("D", 3), ("E", 4)]
    assert create(client, headers, "F")["order"] == 5


def test_list_filters_by_status(client, alice, five_notes):
    _, headers = alice
    client.patch(f"/notes/{five_notes['D']['id']}", headers=headers, json={"status": "archived"})

    r = client.get("/notes", headers=headers, params={"status": "archived"})

    assert [n["title"] for n in r.json()] == ["D"]


def test_move_single_forward(client, alice, five_notes):
    _, headers = alice
    r = client.patch(f"/notes/{five_notes['A']['id']}/order", headers=headers, json={"newOrder": 3})

    assert r.status_code == 200
    assert r.json()["order"] == 3
    assert listed(client, headers) == [("B", 0), ("C", 1), ("D", 2), ("A", 3), ("E", 4)]


def test_move_single_backward(client, alice, five_notes):
    _, headers = alice
    r = client.patch(f"/notes/{five_notes['E']['id']}/order", headers=headers, json={"newOrder": 1})

    assert r.status_code == 200
    assert listed(client, headers) == [("A", 0), ("E", 1), ("B", 2), ("C", 3), ("D", 4)]


def test_move_single_clamps_past_end(client, alice, five_notes):
    _, headers = alice
    r = client.patch(f"/notes/{five_notes['B']['id']}/order", headers=headers, json={"newOrder": 50})

    assert r.json()["order"] == 4
    assert [title for title, _ in listed(client, headers)] == ["A", "C", "D", "E", "B"]


@pytest.mark.parametrize("value", ["2", 2.5, None])
def test_move_single_rejects_non_integer(client, alice, five_notes, value):
    _, headers = alice
    r = client.patch(f"/notes/{five_notes['A']['id']}/order", headers=headers, json={"newOrder": value})

    assert r.status_code == 422
    assert listed(client, headers)[0] == ("A", 0)


def test_move_single_unknown_note(client, alice, five_notes):
    _, headers = alice
    r = client.patch(f"/notes/{uuid.uuid4()}/order", headers=headers, json={"newOrder": 1})

    assert r.status_code == 404
    assert r.json() == {"detail": "Note not found", "code": "not_found"}


def test_move_single_storage_failure_rolls_back(client, alice, five_notes, monkeypatch):
    _, headers = alice

    def failing_set_order(note, new_order):
        raise OperationalError("UPDATE notes", {}, Exception("disk I/O error"))

    monkeypatch.setattr(ordering, "set_order", failing_set_order)
    r = client.patch(f"/notes/{five_notes['A']['id']}/order", headers=headers, json={"newOrder": 3})
    monkeypatch.undo()

    assert r.status_code == 503
    assert r.json()["code"] == "transient"
    assert listed(client, headers) == [("A", 0), ("B", 1), ("C", 2), ("D", 3), ("E", 4)]


def test_batch_reorder(client, alice, five_notes):
    _, headers = alice
    ids = [five_notes[t]["id"] for t in ["E", "D", "C", "B", "A"]]

    r = client.put("/notes/order", headers=headers, json={"noteIds": ids})

    assert r.status_code == 200
    assert [(n["title"], n["order"]) for n in r.json()] == [
        ("E", 0), ("D", 1), ("C", 2), ("B", 3), ("A", 4)
    ]
    assert listed(client, headers) == [("E", 0), ("D", 1), ("C", 2), ("B", 3), ("A", 4)]


def test_batch_reorder_twice_gives_same_ranks(client, alice, five_notes):
    _, headers = alice
    ids = [five_notes[t]["id"] for t in ["C", "A", "E", "B", "D"]]

    first = client.put("/notes/order", headers=headers, json={"noteIds": ids}).json()
    second = client.put("/notes/order", headers=headers, json={"noteIds": ids}).json()

    assert [(n["id"], n["order"]) for n in first] == [(n["id"], n["order"]) for n in second]


def test_batch_reorder_closes_gaps(client, alice, five_notes):
    _, headers = alice
    client.delete(f"/notes/{five_notes['C']['id']}", headers=headers)
    ids = [five_notes[t]["id"] for t in ["A", "B", "D", "E"]]

    client.put("/notes/order", headers=headers, json={"noteIds": ids})

    assert listed(client, headers) == [("A", 0), ("B", 1), ("D", 2), ("E", 3)]


def test_batch_reorder_stale_list_is_rejected(client, alice, five_notes):
    _, headers = alice
    ids = [five_notes[t]["id"] for t in ["E", "D", "C", "B"]]

    r = client.put("/notes/order", headers=headers, json={"noteIds": ids})

    assert r.status_code == 409
    assert r.json()["code"] == "stale_state"
    assert listed(client, headers) == [("A", 0), ("B", 1), ("C", 2), ("D", 3), ("E", 4)]


def test_batch_reorder_with_foreign_note_is_rejected(client, alice, five_notes, make_user, headers_for):
    _, headers = alice
    bob = make_user("bob@example.com")
    foreign = create(client, headers_for(bob), "Z")
    ids = [five_notes[t]["id"] for t in ["A", "B", "C", "D"]] + [foreign["id"]]

    r = client.put("/notes/order", headers=headers, json={"noteIds": ids})

    assert r.status_code == 409
    assert listed(client, headers_for(bob)) == [("Z", 0)]


def test_batch_reorder_duplicates_are_invalid(client, alice, five_notes):
    _, headers = alice
    ids = [five_notes[t]["id"] for t in ["A", "A", "B", "C", "D", "E"]]

    r = client.put("/notes/order", headers=headers, json={"noteIds": ids})

    assert r.status_code == 422
    assert r.json()["code"] == "invalid_input"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
