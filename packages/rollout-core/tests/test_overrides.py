"""Tests for manual flag overrides."""

from rollout.flags.overrides import Override, OverrideStore


class TestOverrideStore:
    def test_empty(self):
        assert OverrideStore().get("A") is None

    def test_initial_global_overrides(self):
        store = OverrideStore({"A": True, "B": False})
        assert store.get("A") == Override(flag="A", enabled=True)
        assert store.get("B").enabled is False

    def test_per_user_wins_over_global(self):
        store = OverrideStore()
        store.force_enable("A")
        store.force_disable("A", user_id="alice")
        assert store.get("A", "alice") == Override(flag="A", enabled=False, user_id="alice")
        assert store.get("A", "bob").enabled is True
        assert store.get("A").enabled is True

    def test_clear(self):
        store = OverrideStore({"A": True})
        store.force_enable("A", user_id="alice")
        store.clear("A", user_id="alice")
        assert store.get("A", "alice").user_id is None
        store.clear("A")
        assert store.get("A", "alice") is None

    def test_clear_unknown_is_noop(self):
        store = OverrideStore()
        store.clear("A")
        store.clear("A", user_id="alice")
        assert store.get("A") is None
        assert store.get("A", "alice") is None

    def test_set_many_and_clear_all(self):
        store = OverrideStore()
        store.set_many([Override("A", True), Override("B", False, "alice")])
        assert store.get("A").enabled is True
        assert store.get("B", "alice").enabled is False
        store.clear_all()
        assert store.get("A") is None
        assert store.get("B", "alice") is None
