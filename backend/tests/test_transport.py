import unittest

from drawparty.server import create_app


TEST_CONFIG = {
    "TESTING": True,
    "REAPER_ENABLED": False,
    "SOCKETIO_ASYNC_MODE": "threading",
    "TRUST_PROXY_HEADERS": False,
}


class TransportTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.app, self.socketio = create_app(TEST_CONFIG)
        self.service = self.app.extensions["drawparty"]
        self.http = self.app.test_client()

    def signal(self, **payload):
        resp = self.http.post("/api/signaling", json=payload)
        return resp.get_json(), resp.status_code

    def create_and_join(self):
        host, _ = self.signal(action="create-room", hostName="Alice", hostAvatar="🦊")
        guest, _ = self.signal(action="join-room", code=host["roomCode"], playerName="Bob", playerAvatar="🐱")
        return host, guest

    @staticmethod
    def caller(seat: dict) -> dict:
        return {"roomId": seat["roomId"], "playerId": seat["playerId"], "sessionToken": seat["sessionToken"]}


class HttpTests(TransportTestCase):
    def test_health(self) -> None:
        resp = self.http.get("/api/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json(), {"ok": True, "rooms": 0})

    def test_signaling_round_trip(self) -> None:
        host, status = self.signal(action="create-room", hostName="Alice", hostAvatar="🦊")
        self.assertEqual(status, 200)
        self.assertTrue(host["success"])

        body, status = self.signal(action="toggle-mute", **self.caller(host))
        self.assertEqual(status, 200)
        self.assertTrue(body["isMuted"])

        body, status = self.signal(action="start-game", **self.caller(host))
        self.assertEqual(status, 400)
        self.assertEqual(body["error"], "validation_error")

    def test_signaling_rejects_non_json(self) -> None:
        resp = self.http.post("/api/signaling", data="nope", content_type="text/plain")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "validation_error")

    def test_room_routes(self) -> None:
        host, guest = self.create_and_join()

        listed = self.http.get("/api/rooms").get_json()
        self.assertEqual([r["code"] for r in listed["rooms"]], [host["roomCode"]])

        resp = self.http.get(f"/api/rooms/{host['roomCode'].lower()}")
        self.assertEqual(resp.status_code, 200)
        snapshot = resp.get_json()
        self.assertEqual(snapshot["room"]["id"], host["roomId"])
        self.assertEqual({p["name"] for p in snapshot["players"]}, {"Alice", "Bob"})
        self.assertNotIn("sessionToken", str(snapshot))

        resp = self.http.get("/api/rooms/ZZZZZZ")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.get_json()["error"], "room_not_found")

    def test_cors_headers_on_api(self) -> None:
        resp = self.http.get("/api/health", headers={"Origin": "http://example.test"})
        self.assertIn("Access-Control-Allow-Origin", resp.headers)


class SocketTests(TransportTestCase):
    def connect(self, seat: dict):
        client = self.socketio.test_client(self.app)
        ack = client.emit("room:subscribe", self.caller(seat), callback=True)
        self.assertEqual(ack, {"success": True})
        return client

    def events(self, client, name: str) -> list:
        return [e["args"][0] for e in client.get_received() if e["name"] == name]

    def test_subscribe_sends_sync(self) -> None:
        host, _guest = self.create_and_join()
        client = self.connect(host)
        synced = self.events(client, "room:sync")
        self.assertEqual(len(synced), 1)
        self.assertEqual(synced[0]["room"]["id"], host["roomId"])
        self.assertEqual(len(synced[0]["players"]), 2)
        self.assertTrue(synced[0]["messages"])

    def test_subscribe_with_bad_token(self) -> None:
        host, _guest = self.create_and_join()
        client = self.socketio.test_client(self.app)
        payload = dict(self.caller(host), sessionToken="y" * 64)
        ack = client.emit("room:subscribe", payload, callback=True)
        self.assertFalse(ack["success"])
        self.assertEqual(ack["error"], "invalid_session")
        self.assertEqual(self.events(client, "room:sync"), [])

    def test_actions_over_socket_publish_changes(self) -> None:
        host, guest = self.create_and_join()
        client = self.connect(host)
        client.get_received()

        ack = client.emit("action", dict(self.caller(guest), action="toggle-ready"), callback=True)
        self.assertTrue(ack["success"])
        self.assertTrue(ack["isReady"])

        changes = self.events(client, "db:change")
        self.assertTrue(any(c["table"] == "room_players" and c["row"]["id"] == guest["playerId"] for c in changes))

        ack = client.emit("action", {"action": "nope"}, callback=True)
        self.assertEqual(ack["error"], "unknown_action")

    def test_draw_relay_only_from_drawer(self) -> None:
        host, guest = self.create_and_join()
        seats = {host["playerId"]: host, guest["playerId"]: guest}
        clients = {pid: self.connect(seat) for pid, seat in seats.items()}

        self.signal(action="start-game", **self.caller(host))
        room = self.service.room_by_id(host["roomId"])
        drawer_id = room.game_state.current_drawer_id
        other_id = next(pid for pid in seats if pid != drawer_id)
        drawer, other = seats[drawer_id], seats[other_id]

        options, _ = self.signal(action="get-word-options", **self.caller(drawer))
        self.signal(action="select-word", word=options["wordOptions"][0], **self.caller(drawer))
        for client in clients.values():
            client.get_received()

        stroke = dict(self.caller(drawer), points=[[0, 0], [5, 5]], color="#000")
        ack = clients[drawer_id].emit("draw:stroke", stroke, callback=True)
        self.assertEqual(ack, {"success": True})
        relayed = self.events(clients[other_id], "draw:stroke")
        self.assertEqual(len(relayed), 1)
        self.assertEqual(relayed[0]["points"], [[0, 0], [5, 5]])
        self.assertNotIn("sessionToken", relayed[0])
        self.assertEqual(self.events(clients[drawer_id], "draw:stroke"), [])

        ack = clients[other_id].emit("draw:clear", self.caller(other), callback=True)
        self.assertFalse(ack["success"])
        self.assertEqual(self.events(clients[drawer_id], "draw:clear"), [])

    def test_disconnect_marks_player_offline(self) -> None:
        host, guest = self.create_and_join()
        client = self.connect(guest)
        room = self.service.room_by_id(host["roomId"])
        self.assertTrue(room.players[guest["playerId"]].is_connected)

        client.disconnect()
        self.assertFalse(room.players[guest["playerId"]].is_connected)

        again = self.connect(guest)
        self.assertTrue(room.players[guest["playerId"]].is_connected)
        ack = again.emit("room:unsubscribe", {"roomId": host["roomId"]}, callback=True)
        self.assertEqual(ack, {"success": True})
        self.assertFalse(room.players[guest["playerId"]].is_connected)


if __name__ == "__main__":
    unittest.main()
