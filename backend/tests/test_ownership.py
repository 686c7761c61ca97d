import pytest


@pytest.fixture
def owner(make_user):
    return make_user(name="Owner")


@pytest.fixture
def intruder(make_user):
    return make_user(name="Intruder")


@pytest.fixture
def owned_todo(owner, make_todo):
    return make_todo(owner["headers"], title="Private plans", **{"tags[]": ["secret"]})


def test_other_user_cannot_read(client, intruder, owned_todo):
    response = client.get(f"/api/todos/{owned_todo['id']}", headers=intruder["headers"])

    assert response.status_code == 403
    assert response.json()["message"] == "User not authorized"


@pytest.mark.parametrize("data", [
    {"title": "Hijacked"},
    {"title": "   "},
    {"title": "undefined"},
    {"completed": "maybe"},
    {},
])
def test_other_user_cannot_update_regardless_of_payload(client, owner, intruder, owned_todo, data):
    response = client.put(
        f"/api/todos/{owned_todo['id']}", data=data, headers=intruder["headers"]
    )

    assert response.status_code == 403
    unchanged = client.get(f"/api/todos/{owned_todo['id']}", headers=owner["headers"]).json()
    assert unchanged["title"] == "Private plans"


def test_other_user_cannot_delete(client, owner, intruder, owned_todo):
    response = client.delete(f"/api/todos/{owned_todo['id']}", headers=intruder["headers"])

    assert response.status_code == 403
    assert client.get(f"/api/todos/{owned_todo['id']}", headers=owner["headers"]).status_code == 200


def test_other_user_never_sees_todo_in_listing(client, intruder, owned_todo):
    for params in ({}, {"search": "Private"}, {"tag": "secret"}):
        response = client.get("/api/todos", params=params, headers=intruder["headers"])

        assert response.json()["todos"] == []
        assert response.json()["pagination"]["totalCount"] == 0


def test_missing_todo_is_not_found_for_everyone(client, intruder, owned_todo):
    response = client.get(f"/api/todos/{owned_todo['id'] + 1000}", headers=intruder["headers"])

    assert response.status_code == 404


def test_owner_is_kept_on_update(client, owner, owned_todo):
    response = client.put(
        f"/api/todos/{owned_todo['id']}", data={"title": "Still mine"}, headers=owner["headers"]
    )

    assert response.status_code == 200
    assert response.json()["user_id"] == owner["id"]
