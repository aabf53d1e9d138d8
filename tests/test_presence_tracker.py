from services.presence_tracker import PresenceTracker


class TestPresenceTracker:
    def test_join_keeps_insertion_order(self):
        tracker = PresenceTracker()

        tracker.join("main", "alice")
        users = tracker.join("main", "bob")

        assert users == ["alice", "bob"]

    def test_join_is_idempotent(self):
        tracker = PresenceTracker()

        once = tracker.join("main", "alice")
        twice = tracker.join("main", "alice")

        assert once == twice == ["alice"]

    def test_leave_removes_user(self):
        tracker = PresenceTracker()
        tracker.join("main", "alice")
        tracker.join("main", "bob")

        users = tracker.leave("main", "alice")

        assert users == ["bob"]
        assert "alice" not in tracker.snapshot("main")

    def test_leave_absent_user_is_noop(self):
        tracker = PresenceTracker()
        tracker.join("main", "alice")

        assert tracker.leave("main", "carol") == ["alice"]
        assert tracker.leave("unknown", "alice") == []

    def test_snapshot_of_unknown_room_is_empty(self):
        assert PresenceTracker().snapshot("nowhere") == []

    def test_snapshot_is_a_copy(self):
        tracker = PresenceTracker()
        tracker.join("main", "alice")

        tracker.snapshot("main").append("mallory")

        assert tracker.snapshot("main") == ["alice"]

    def test_drop_room_discards_presence(self):
        tracker = PresenceTracker()
        tracker.join("design", "alice")

        tracker.drop_room("design")

        assert tracker.snapshot("design") == []
        assert "design" not in tracker.rooms

    def test_ensure_room_and_counts(self):
        tracker = PresenceTracker()
        tracker.ensure_room("design")
        tracker.join("main", "alice")
        tracker.join("work", "bob")

        assert tracker.snapshot("design") == []
        assert tracker.online_count() == 2
