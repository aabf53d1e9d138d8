import pytest

from core.errors import InvalidRoomName, RoomAlreadyExists, RoomNotFound, RoomProtected, ValidationError
from services.room_registry import DEFAULT_ROOMS, RoomRegistry


class TestRoomRegistry:
    def test_initial_rooms_are_the_protected_builtins(self):
        registry = RoomRegistry()

        assert registry.list() == ["main", "chil", "work", "fun"]
        assert all(registry.get(name).protected for name in DEFAULT_ROOMS)

    def test_create_appends_in_creation_order(self):
        registry = RoomRegistry()

        registry.create("design")
        registry.create("ops")

        assert registry.list()[-2:] == ["design", "ops"]
        assert registry.get("design").protected is False

    def test_create_trims_whitespace(self):
        registry = RoomRegistry()

        room = registry.create("  design  ")

        assert room.name == "design"
        assert registry.exists("design")
        with pytest.raises(RoomAlreadyExists):
            registry.create("design ")

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_create_rejects_empty_names(self, name):
        registry = RoomRegistry()
        before = registry.list()

        with pytest.raises(InvalidRoomName) as exc:
            registry.create(name)

        assert isinstance(exc.value, ValidationError)
        assert registry.list() == before

    def test_create_existing_fails(self):
        registry = RoomRegistry()

        with pytest.raises(RoomAlreadyExists):
            registry.create("main")
        assert registry.list().count("main") == 1

    def test_names_are_case_sensitive(self):
        registry = RoomRegistry()

        registry.create("Main")

        assert "Main" in registry.list()
        assert "main" in registry.list()

    @pytest.mark.parametrize("name", list(DEFAULT_ROOMS))
    def test_builtins_cannot_be_deleted(self, name):
        registry = RoomRegistry()
        registry.create("design")
        registry.delete("design")

        with pytest.raises(RoomProtected):
            registry.delete(name)
        assert registry.exists(name)

    def test_delete_missing_room(self):
        registry = RoomRegistry()

        with pytest.raises(RoomNotFound):
            registry.delete("nope")

    @pytest.mark.parametrize("name", ["design", "Main", "room with spaces", "🎉"])
    def test_create_then_delete_restores_room_list(self, name):
        registry = RoomRegistry()
        registry.create("ops")
        before = registry.list()

        registry.create(name)
        registry.delete(name)

        assert registry.list() == before
