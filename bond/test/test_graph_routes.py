import pytest
from fastapi.testclient import TestClient

from bond.core.GraphStore import GraphStore
from bond.core.Storage import MemoryStorage
from bond.server.main import app
from bond.server.state import graph_state


class TestGraphRoutes:

    def setup_method(self):
        self.storage = MemoryStorage()
        graph_state.reload(self.storage)
        self.client = TestClient(app)

    @pytest.fixture
    def people(self):
        me = self.client.post("/api/user", json={"name": "Me"}).json()["people"][0]
        alice = self.client.post("/api/people", json={"name": "Alice"}).json()["people"][1]
        bob = self.client.post("/api/people", json={"name": "Bob"}).json()["people"][2]
        return me, alice, bob

    def test_health(self):
        assert self.client.get("/health").json() == {"status": "ok"}

    def test_empty_graph(self):
        assert self.client.get("/api/graph").json() == {"people": [], "connections": []}
        assert self.client.get("/api/user").json() is None

    def test_user_and_people(self, people):
        me, alice, bob = people

        assert me["isUser"] is True
        assert me["position"] == {"x": 250, "y": 200}
        assert alice["isUser"] is False
        assert self.client.get("/api/user").json()["id"] == me["id"]

    def test_blank_name_is_noop(self, people):
        graph = self.client.post("/api/people", json={"name": "  "}).json()
        assert len(graph["people"]) == 3

    def test_connect_rejects_reverse_duplicate(self, people):
        _, alice, bob = people

        graph = self.client.post("/api/connections", json={"fromId": alice["id"], "toId": bob["id"]}).json()
        assert len(graph["connections"]) == 1

        graph = self.client.post("/api/connections", json={"fromId": bob["id"], "toId": alice["id"]}).json()
        assert len(graph["connections"]) == 1

        [entry] = self.client.get("/api/connections").json()
        assert entry["label"] == "Alice ↔ Bob"

    def test_remove_person_cascades(self, people):
        me, alice, _ = people
        self.client.post("/api/connections", json={"fromId": me["id"], "toId": alice["id"]})

        assert self.client.delete(f"/api/people/{alice['id']}").status_code == 204
        assert self.client.delete(f"/api/people/{alice['id']}").status_code == 204

        graph = self.client.get("/api/graph").json()
        assert [p["name"] for p in graph["people"]] == ["Me", "Bob"]
        assert graph["connections"] == []

    def test_remove_connection(self, people):
        me, alice, _ = people
        conn = self.client.post(
            "/api/connections", json={"fromId": me["id"], "toId": alice["id"]}
        ).json()["connections"][0]

        assert self.client.delete(f"/api/connections/{conn['id']}").status_code == 204
        assert self.client.get("/api/graph").json()["connections"] == []

    def test_set_position(self, people):
        _, alice, _ = people

        resp = self.client.put(f"/api/people/{alice['id']}/position", json={"x": 120, "y": 45})
        assert resp.status_code == 204

        graph = self.client.get("/api/graph").json()
        assert graph["people"][1]["position"] == {"x": 120, "y": 45}

    def test_non_finite_position_is_rejected(self, people):
        _, alice, _ = people
        overflow = '{"x": 1e400, "y": 5}'

        resp = self.client.put(
            f"/api/people/{alice['id']}/position",
            content=overflow,
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 422

        resp = self.client.post(
            "/api/view/nodes/changes",
            content=f'[{{"type": "position", "id": "{alice["id"]}", "position": {overflow}}}]',
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 422

        assert len(GraphStore(self.storage).graph.people) == 3
        assert self.client.get("/api/graph").json()["people"][1]["position"] == alice["position"]

    def test_remove_user_through_api(self, people):
        me, _, _ = people

        assert self.client.delete(f"/api/people/{me['id']}").status_code == 204

        assert self.client.get("/api/user").json() is None
        assert len(self.client.get("/api/graph").json()["people"]) == 2

    def test_reset_requires_confirmation(self, people):
        assert self.client.post("/api/reset").status_code == 400
        assert len(self.client.get("/api/graph").json()["people"]) == 3

        assert self.client.post("/api/reset", params={"confirm": "true"}).status_code == 204
        assert self.client.get("/api/graph").json() == {"people": [], "connections": []}
        assert self.storage.get(graph_state.store.key) is None

    def test_view_drag_round_trip(self, people):
        _, alice, _ = people

        view = self.client.post(
            "/api/view/nodes/changes",
            json=[{"type": "position", "id": alice["id"], "position": {"x": 120, "y": 45}, "dragging": True}],
        ).json()

        node = next(n for n in view["nodes"] if n["id"] == alice["id"])
        assert node["position"] == {"x": 120, "y": 45}
        graph = self.client.get("/api/graph").json()
        assert graph["people"][1]["position"] == {"x": 120, "y": 45}

    def test_bad_change_type_is_rejected(self, people):
        _, alice, _ = people
        resp = self.client.post("/api/view/nodes/changes", json=[{"type": "explode", "id": alice["id"]}])
        assert resp.status_code == 422

    def test_edge_paths_after_measuring(self, people):
        me, alice, _ = people
        self.client.post("/api/view/connect", json={"source": me["id"], "target": alice["id"]})
        self.client.post("/api/view/nodes/changes", json=[
            {"type": "position", "id": me["id"], "position": {"x": 0, "y": 0}},
            {"type": "position", "id": alice["id"], "position": {"x": 300, "y": 0}},
        ])
        assert self.client.get("/api/view/edges/paths").json() == []

        self.client.post("/api/view/nodes/changes", json=[
            {"type": "dimensions", "id": me["id"], "dimensions": {"width": 100, "height": 50}},
            {"type": "dimensions", "id": alice["id"], "dimensions": {"width": 100, "height": 50}},
        ])
        [path] = self.client.get("/api/view/edges/paths").json()

        assert path["path"] == "M100,25 C200,25 200,25 300,25"
        assert path["sourcePosition"] == "right"
        assert path["targetPosition"] == "left"

    def test_edge_removed_from_surface(self, people):
        me, alice, _ = people
        view = self.client.post("/api/view/connect", json={"source": me["id"], "target": alice["id"]}).json()
        edge_id = view["edges"][0]["id"]

        view = self.client.post("/api/view/edges/changes", json=[{"type": "remove", "id": edge_id}]).json()
        assert view["edges"] == []

    def test_sequential_selection(self, people):
        _, alice, bob = people

        view = self.client.post(f"/api/view/select/{alice['id']}").json()
        assert view["connectionSourceId"] == alice["id"]

        view = self.client.post(f"/api/view/select/{bob['id']}").json()
        assert view["connectionSourceId"] is None
        assert len(view["edges"]) == 1

        self.client.post(f"/api/view/select/{alice['id']}")
        view = self.client.delete("/api/view/select").json()
        assert view["connectionSourceId"] is None

    def test_pair_selection_fan_out(self, people):
        me, alice, bob = people

        self.client.put("/api/intake/pair/target", json={"id": me["id"]})
        for person in (alice, bob):
            self.client.put("/api/intake/pair/source", json={"id": person["id"]})
            result = self.client.post("/api/intake/pair/confirm").json()
            assert result["selection"] == {"sourceId": None, "targetId": me["id"]}

        assert len(result["graph"]["connections"]) == 2
        assert self.client.get("/api/intake/pair").json() == {"sourceId": None, "targetId": me["id"]}
