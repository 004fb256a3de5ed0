import unittest
from unittest import mock

from drawparty.dispatch import ACTIONS, dispatch

from support import make_service


class DispatchTests(unittest.TestCase):
    def setUp(self) -> None:
        self.service, self.feed = make_service()

    def _create(self) -> dict:
        body, status = dispatch(
            self.service,
            {"action": "create-room", "hostName": "Alice", "hostAvatar": "🦊", "settings": {"drawTime": 60}},
        )
        self.assertEqual(status, 200)
        return body

    def test_create_and_join(self) -> None:
        created = self._create()
        self.assertTrue(created["success"])
        self.assertEqual(len(created["roomCode"]), 6)
        self.assertEqual(created["settings"]["drawTime"], 60)

        body, status = dispatch(
            self.service,
            {"action": "join-room", "code": created["roomCode"].lower(), "playerName": "Bob", "playerAvatar": "🐱"},
        )
        self.assertEqual(status, 200)
        self.assertEqual(body["roomId"], created["roomId"])
        self.assertFalse(body["reconnected"])
        self.assertNotEqual(body["sessionToken"], created["sessionToken"])

    def test_unknown_action(self) -> None:
        body, status = dispatch(self.service, {"action": "fly-to-moon"})
        self.assertEqual(status, 400)
        self.assertEqual(body["error"], "unknown_action")
        self.assertFalse(body["retryable"])

        body, status = dispatch(self.service, {})
        self.assertEqual(body["error"], "unknown_action")

    def test_non_object_body(self) -> None:
        body, status = dispatch(self.service, ["create-room"])
        self.assertEqual(status, 400)
        self.assertEqual(body["error"], "validation_error")

    def test_validation_error_names_field(self) -> None:
        body, status = dispatch(self.service, {"action": "create-room", "hostName": "", "hostAvatar": "🦊"})
        self.assertEqual(status, 400)
        self.assertEqual(body["error"], "validation_error")
        self.assertEqual(body["field"], "playerName")

    def test_bad_session(self) -> None:
        created = self._create()
        body, status = dispatch(
            self.service,
            {
                "action": "send-message",
                "roomId": created["roomId"],
                "playerId": created["playerId"],
                "sessionToken": "x" * 64,
                "content": "hi",
            },
        )
        self.assertEqual(status, 401)
        self.assertEqual(body["error"], "invalid_session")

    def test_malformed_session_token(self) -> None:
        created = self._create()
        caller = {"action": "toggle-ready", "roomId": created["roomId"], "playerId": created["playerId"]}
        for token in ("short", "t" * 101, 12345678901, ["x" * 64]):
            body, status = dispatch(self.service, dict(caller, sessionToken=token))
            self.assertEqual(status, 401, token)
            self.assertEqual(body["error"], "invalid_session")

        body, status = dispatch(self.service, dict(caller, sessionToken=created["sessionToken"]))
        self.assertEqual(status, 200)

    def test_room_not_found(self) -> None:
        body, status = dispatch(self.service, {"action": "get-room", "code": "ZZZZZZ"})
        self.assertEqual(status, 404)
        self.assertEqual(body["error"], "room_not_found")

    def test_get_room_by_code_or_id(self) -> None:
        created = self._create()
        by_code, _ = dispatch(self.service, {"action": "get-room", "code": created["roomCode"]})
        by_id, _ = dispatch(self.service, {"action": "get-room", "roomId": created["roomId"]})
        self.assertEqual(by_code["room"]["id"], created["roomId"])
        self.assertEqual(by_id["room"]["code"], created["roomCode"])
        self.assertEqual(len(by_code["players"]), 1)

    def test_ice_servers(self) -> None:
        body, status = dispatch(self.service, {"action": "get-ice-servers"})
        self.assertEqual(status, 200)
        self.assertEqual(len(body["iceServers"]), 5)
        self.assertTrue(all(s["urls"].startswith("stun:") for s in body["iceServers"]))

    def test_unexpected_error_is_retryable(self) -> None:
        created = self._create()
        with mock.patch.object(self.service, "toggle_ready", side_effect=RuntimeError("boom")):
            with self.assertLogs("drawparty.dispatch", level="ERROR"):
                body, status = dispatch(
                    self.service,
                    {
                        "action": "toggle-ready",
                        "roomId": created["roomId"],
                        "playerId": created["playerId"],
                        "sessionToken": created["sessionToken"],
                    },
                )
        self.assertEqual(status, 500)
        self.assertEqual(body["error"], "internal_error")
        self.assertTrue(body["retryable"])

    def test_invalid_word_selection_is_logged(self) -> None:
        created = self._create()
        joined, _ = dispatch(
            self.service,
            {"action": "join-room", "code": created["roomCode"], "playerName": "Bob", "playerAvatar": "🐱"},
        )
        caller = {"roomId": created["roomId"], "playerId": created["playerId"], "sessionToken": created["sessionToken"]}
        dispatch(self.service, dict(caller, action="start-game"))

        room = self.service.room_by_id(created["roomId"])
        drawer_id = room.game_state.current_drawer_id
        token = created["sessionToken"] if drawer_id == created["playerId"] else joined["sessionToken"]
        drawer = {"roomId": room.id, "playerId": drawer_id, "sessionToken": token}

        with self.assertLogs("drawparty", level="WARNING") as logs:
            body, status = dispatch(self.service, dict(drawer, action="select-word", word="not-offered"))
        self.assertEqual(status, 400)
        self.assertEqual(body["error"], "invalid_word_selection")
        self.assertTrue(any("security:" in line for line in logs.output))

        options, _ = dispatch(self.service, dict(drawer, action="get-word-options"))
        body, status = dispatch(self.service, dict(drawer, action="select-word", word=options["wordOptions"][0]))
        self.assertEqual(status, 200)
        self.assertEqual(body["word"], options["wordOptions"][0])

        body, status = dispatch(self.service, dict(caller, action="advance-turn"))
        self.assertEqual(status, 200)

    def test_action_table(self) -> None:
        for name in (
            "create-room", "join-room", "leave-room", "get-room", "get-public-rooms",
            "get-ice-servers", "update-game-state", "update-settings", "start-game",
            "add-bot", "update-score", "next-turn", "end-game", "reveal-word",
            "reset-game", "tick", "end-round", "get-word-options", "select-word",
            "toggle-ready", "toggle-mute", "send-message", "check-guess",
        ):
            self.assertIn(name, ACTIONS)


if __name__ == "__main__":
    unittest.main()
