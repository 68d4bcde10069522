from bond.core.ConnectionIntake import ConnectionIntake
from bond.core.GraphStore import GraphStore
from bond.core.Storage import MemoryStorage
from bond.core.ViewSynchronizer import ViewSynchronizer


class TestConnectionIntake:

    def setup_method(self):
        self.store = GraphStore(MemoryStorage())
        self.sync = ViewSynchronizer(self.store)
        self.intake = ConnectionIntake(self.store, self.sync)
        self.me = self.store.set_as_user("Me")
        self.a = self.store.add_person("A")
        self.b = self.store.add_person("B")

    # ── Sequential selection ─────────────────────────────────────────────────

    def test_first_selection_arms_source(self):
        assert self.intake.select_node(self.a.id) is None

        assert self.sync.connection_source_id == self.a.id
        assert self.sync.get_node(self.a.id).data["isConnectionSource"] is True

    def test_selecting_armed_node_cancels(self):
        self.intake.select_node(self.a.id)
        self.intake.select_node(self.a.id)

        assert self.sync.connection_source_id is None
        assert self.store.graph.connections == []

    def test_second_selection_connects_and_disarms(self):
        self.intake.select_node(self.a.id)
        conn = self.intake.select_node(self.b.id)

        assert (conn.from_id, conn.to_id) == (self.a.id, self.b.id)
        assert self.sync.connection_source_id is None

    def test_rejected_attempt_still_disarms(self):
        self.store.add_connection(self.b.id, self.a.id)

        self.intake.select_node(self.a.id)
        assert self.intake.select_node(self.b.id) is None

        assert self.sync.connection_source_id is None
        assert len(self.store.graph.connections) == 1

    def test_unknown_node_does_not_arm(self):
        self.intake.select_node("ghost")
        assert self.sync.connection_source_id is None

    def test_render_node_select_callback_drives_selection(self):
        self.sync.get_node(self.me.id).on_select()
        self.sync.get_node(self.b.id).on_select()

        [conn] = self.store.graph.connections
        assert conn.pair == {self.me.id, self.b.id}

    def test_armed_source_survives_unrelated_changes(self):
        self.intake.select_node(self.a.id)
        self.store.add_person("C")
        self.store.update_person_position(self.b.id, self.b.position)

        assert self.sync.connection_source_id == self.a.id

    # ── Drag gesture ─────────────────────────────────────────────────────────

    def test_gesture_forwards_to_store(self):
        conn = self.intake.connect_gesture(self.a.id, self.me.id)
        assert conn is not None
        assert self.intake.connect_gesture(self.me.id, self.a.id) is None
        assert self.intake.connect_gesture(self.a.id, self.a.id) is None
        assert len(self.store.graph.connections) == 1

    # ── Explicit pair ────────────────────────────────────────────────────────

    def test_pair_confirm_keeps_target_for_fan_out(self):
        self.intake.select_pair_target(self.me.id)

        self.intake.select_pair_source(self.a.id)
        self.intake.confirm_pair()
        assert self.intake.pair_source_id is None
        assert self.intake.pair_target_id == self.me.id

        self.intake.select_pair_source(self.b.id)
        self.intake.confirm_pair()

        pairs = [c.pair for c in self.store.graph.connections]
        assert pairs == [{self.a.id, self.me.id}, {self.b.id, self.me.id}]

    def test_pair_confirm_with_missing_side_is_noop(self):
        self.intake.select_pair_source(self.a.id)
        assert self.intake.confirm_pair() is None

        assert self.store.graph.connections == []
        assert self.intake.pair_source_id is None

    def test_pair_confirm_same_person_is_noop(self):
        self.intake.select_pair_source(self.a.id)
        self.intake.select_pair_target(self.a.id)

        assert self.intake.confirm_pair() is None
        assert self.store.graph.connections == []
