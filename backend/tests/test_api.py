def _post(client, **body):
    return client.post("/api/game", json=body)


def _join_three(client, room="ABCD"):
    sessions = {}
    for name in ["Alice", "Bob", "Cara"]:
        resp = _post(client, action="join", roomId=room, playerName=name)
        assert resp.status_code == 200
        sessions[name] = resp.get_json()["sessionId"]
    return sessions


def test_health(client):
    resp = client.get("/api/health")
    data = resp.get_json()

    assert resp.status_code == 200
    assert data["status"] == "ok"
    assert data["cardsLoaded"] == 40
    assert data["activeRooms"] == 0


def test_cards_lists_the_pool(client):
    cards = client.get("/api/cards").get_json()
    assert len(cards) == 40
    assert cards[0] == {"id": 1, "title": "Card 1", "imageRef": "/images/1.jpg"}


def test_join_mints_a_session_and_returns_own_view(client):
    resp = _post(client, action="join", roomId="ABCD", playerName="Alice")
    body = resp.get_json()

    assert body["success"] is True
    assert body["sessionId"]
    assert body["game"]["players"][0]["name"] == "Alice"
    assert body["game"]["players"][0]["id"] == body["sessionId"]


def test_rest_game_flow(client):
    sessions = _join_three(client)

    body = _post(client, action="startGame", roomId="ABCD").get_json()
    assert body["game"]["phase"] == "storytelling"

    alice = client.get(f"/api/rooms/ABCD?sessionId={sessions['Alice']}").get_json()
    me = next(p for p in alice["players"] if p["name"] == "Alice")
    assert len(me["hand"]) == 6
    assert all("hand" not in p for p in alice["players"] if p["name"] != "Alice")

    body = _post(
        client,
        action="giveHint",
        roomId="ABCD",
        sessionId=sessions["Alice"],
        cardId=str(me["hand"][0]["id"]),
        hint="the long road",
    ).get_json()
    assert body["game"]["phase"] == "selectCards"
    assert body["game"]["hint"] == "the long road"

    for name in ["Bob", "Cara"]:
        view = client.get(f"/api/rooms/ABCD?sessionId={sessions[name]}").get_json()
        hand = next(p for p in view["players"] if p["name"] == name)["hand"]
        _post(client, action="chooseCard", roomId="ABCD", sessionId=sessions[name], cardId=hand[0]["id"])

    bob = client.get(f"/api/rooms/ABCD?sessionId={sessions['Bob']}").get_json()
    assert bob["phase"] == "voting"
    assert bob["storytellerCardId"] is None
    assert len(bob["mixedCards"]) == 3

    resp = _post(client, action="nextRound", roomId="ABCD")
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["success"] is False
    assert body["error"] == "invalid_phase"
    assert body["message"]


def test_wrong_player_gets_a_reason_code(client):
    sessions = _join_three(client)
    _post(client, action="startGame", roomId="ABCD")

    resp = _post(client, action="giveHint", roomId="ABCD", sessionId=sessions["Bob"], cardId=1, hint="nope")

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "not_storyteller"


def test_start_with_too_few_players_conflicts(client):
    _post(client, action="join", roomId="ABCD", playerName="Alice")

    resp = _post(client, action="startGame", roomId="ABCD")

    assert resp.status_code == 409
    assert resp.get_json()["error"] == "not_enough_players"


def test_unknown_room_is_404(client):
    resp = client.get("/api/rooms/ZZZZ")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "room_not_found"

    resp = _post(client, action="startGame", roomId="ZZZZ")
    assert resp.status_code == 404


def test_unknown_action_and_bad_payload(client):
    resp = _post(client, action="drawPicture", roomId="ABCD")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "unknown_action"

    resp = client.post("/api/game", json=["not", "an", "object"])
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_payload"


def test_duplicate_name_in_lobby(client):
    _post(client, action="join", roomId="ABCD", playerName="Alice")
    resp = _post(client, action="join", roomId="ABCD", playerName="Alice")

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "name_taken"


def test_leave_reports_rooms(client):
    sessions = _join_three(client)

    body = _post(client, action="leave", sessionId=sessions["Cara"]).get_json()

    assert body == {"success": True, "rooms": ["ABCD"]}
    names = [p["name"] for p in client.get("/api/rooms/ABCD").get_json()["players"]]
    assert names == ["Alice", "Bob"]
