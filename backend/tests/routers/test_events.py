import json

import pytest

from smol_manager.routers.events import mod_events


class TestModEvents:
    @pytest.mark.asyncio
    async def test_initial_state_then_updates(self, manager, game_dirs, make_mod):
        make_mod(game_dirs.mods, "Alpha", "alpha")
        stream = mod_events(manager)

        first = await anext(stream)
        second = await anext(stream)
        assert first == {"event": "loading", "data": json.dumps({"is_loading": False})}
        assert second["event"] == "mods"
        assert json.loads(second["data"])["mods"] == []

        manager.reload()

        events = [await anext(stream) for _ in range(3)]
        assert [e["event"] for e in events] == ["loading", "mods", "loading"]
        assert json.loads(events[0]["data"]) == {"is_loading": True}
        assert [m["id"] for m in json.loads(events[1]["data"])["mods"]] == ["alpha"]

        await stream.aclose()

    @pytest.mark.asyncio
    async def test_close_unsubscribes(self, manager):
        stream = mod_events(manager)
        await anext(stream)
        await stream.aclose()

        # No listener left to schedule callbacks on a finished stream.
        manager.reload()
