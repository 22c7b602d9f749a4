from __future__ import annotations

from unittest import TestCase, mock

from fastapi.testclient import TestClient

from . import main
from .catalog import parse_rounds
from .directory import SessionDirectory
from .events import EventStore
from .game import GameController

CATALOG = [{"name": "Round 1", "questions": [{"questionId": "q1", "text": "?", "correctAnswer": "topper"}]}]


class ApiTests(TestCase):
    def setUp(self) -> None:
        self.store = EventStore()
        directory = SessionDirectory(self.store, catalog=parse_rounds(CATALOG), code_factory=lambda: "ABCD")
        controller = GameController(directory, self.store)
        patches = [
            mock.patch.object(main, "controller", controller),
            mock.patch.object(main, "event_store", self.store),
        ]
        for patch in patches:
            patch.start()
            self.addCleanup(patch.stop)
        self.client = TestClient(main.app)

    def _create(self):
        res = self.client.post("/api/session", json={"player_id": "alice", "name": "Alice", "connection_id": "conn-a"})
        self.assertEqual(res.status_code, 200)
        return res.json()

    def _join_bob(self):
        res = self.client.post("/api/session", json={"player_id": "bob", "name": "Bob", "code": "abcd"})
        self.assertEqual(res.status_code, 200)
        return res.json()

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_create_session(self):
        body = self._create()
        self.assertEqual(body["connectionId"], "conn-a")
        self.assertEqual(body["session"]["code"], "ABCD")
        self.assertEqual(body["session"]["hostId"], "alice")
        self.assertEqual(body["session"]["stage"], "LOBBY")

    def test_join_generates_connection_id(self):
        self._create()
        body = self._join_bob()
        self.assertTrue(body["connectionId"])
        self.assertEqual([p["id"] for p in body["session"]["players"]], ["alice", "bob"])

        state = self.client.get("/api/session/ABCD").json()
        self.assertEqual(len(state["players"]), 2)
        self.assertNotIn("connection_id", state["players"][0])

    def test_unknown_session_is_404(self):
        res = self.client.post("/api/session", json={"player_id": "bob", "name": "Bob", "code": "ZZZZ"})
        self.assertEqual(res.status_code, 404)
        self.assertEqual(self.client.get("/api/session/ZZZZ").status_code, 404)

    def test_start_without_ready_players_is_rejected(self):
        self._create()
        self._join_bob()

        res = self.client.post("/api/session/ABCD/start", json={"player_id": "alice"})
        self.assertEqual(res.status_code, 400)

        events = self.client.get("/api/session/ABCD/events").json()["events"]
        self.assertEqual(events[-1]["type"], "lobby_error")

    def test_non_host_error_is_delivered_to_connection(self):
        self._create()
        bob_conn = self._join_bob()["connectionId"]
        for pid in ("alice", "bob"):
            self.client.post("/api/session/ABCD/ready", json={"player_id": pid, "is_ready": True})

        res = self.client.post("/api/session/ABCD/start", json={"player_id": "bob"})
        self.assertEqual(res.status_code, 400)

        events = self.client.get(f"/api/connection/{bob_conn}/events").json()["events"]
        self.assertEqual([e["type"] for e in events], ["lobby_error"])
        self.assertEqual(self.client.get("/api/session/ABCD").json()["stage"], "LOBBY")

    def test_ready_and_start(self):
        self._create()
        self._join_bob()
        for pid in ("alice", "bob"):
            res = self.client.post("/api/session/ABCD/ready", json={"player_id": pid, "is_ready": True})
            self.assertEqual(res.json(), {"ok": True})

        res = self.client.post("/api/session/ABCD/start", json={"player_id": "alice"})
        self.assertEqual(res.json(), {"ok": True})
        self.assertEqual(self.client.get("/api/session/ABCD").json()["stage"], "ROUND_START")

    def test_answer_outside_collection_is_not_accepted(self):
        self._create()
        res = self.client.post("/api/session/ABCD/answer", json={"player_id": "alice", "answer": "topper"})
        self.assertEqual(res.json(), {"accepted": False})

    def test_events_polling_after_sequence(self):
        self._create()
        first = self.client.get("/api/session/ABCD/events").json()
        self._join_bob()
        later = self.client.get(f"/api/session/ABCD/events?after={first['latest_seq']}").json()

        self.assertEqual([e["type"] for e in later["events"]], ["lobby_update"])
        self.assertEqual(later["latest_seq"], first["latest_seq"] + 1)

    def test_disconnect_last_lobby_player(self):
        self._create()
        res = self.client.post("/api/session/ABCD/disconnect", json={"player_id": "alice"})
        self.assertEqual(res.json(), {"ok": True})
        self.assertEqual(self.client.get("/api/session/ABCD").status_code, 404)

    def test_connection_events(self):
        res = self.client.post("/api/session", json={"player_id": "bob", "name": "Bob", "code": "ZZZZ", "connection_id": "conn-b"})
        self.assertEqual(res.status_code, 404)
        events = self.client.get("/api/connection/conn-b/events").json()["events"]
        self.assertEqual([e["type"] for e in events], ["lobby_error"])
