"""
Tests for the tree harvester controller
"""
import asyncio
from unittest.mock import AsyncMock, call, patch

import pytest

from treebot.controllers import Harvester, HarvesterConfig, HarvestStage, Phase, StartOutcome
from treebot.controllers.harvester import is_tree_log
from treebot.event_stream import EventStream
from treebot.schemas import EventKind, HarvestParams
from treebot.world import TravelOutcome, Vec3

from tests.mocks import FakeWorldGateway


@pytest.fixture
def gateway():
    return FakeWorldGateway(position=Vec3(0.5, 64, 0.5))


@pytest.fixture
def events():
    return EventStream()


@pytest.fixture
def harvester(gateway, events):
    config = HarvesterConfig(max_trees=5, search_radius=6, vertical_search=2, settle_delay_s=0, pickup_delay_s=0)
    return Harvester(gateway, events, config)


async def run_until_idle(controller, max_ticks=200):
    tick = 0
    while controller.is_running and tick < max_ticks:
        tick += 1
        await controller.tick(tick)
    return tick


def kinds(events):
    return [event.kind for event in events.event_history]


@pytest.mark.parametrize(
    "block,tree_type,expected",
    [
        ("oak_log", "any", True),
        ("stripped_birch_log", "any", True),
        ("oak_leaves", "any", False),
        ("oak_log", "oak", True),
        ("dark_oak_log", "dark_oak", True),
        ("birch_log", "oak", False),
        (None, "any", False),
    ],
)
def test_is_tree_log(block, tree_type, expected):
    assert is_tree_log(block, tree_type) is expected


@pytest.mark.asyncio
async def test_harvests_whole_trunk(harvester, gateway, events):
    gateway.add_tree(2, 64, 0, height=3)

    assert harvester.start(HarvestParams(treeType="oak", maxCount=1), "Steve") is StartOutcome.STARTED
    await run_until_idle(harvester)

    assert gateway.dug == [Vec3(2, 64, 0), Vec3(2, 65, 0), Vec3(2, 66, 0)]
    assert gateway.travel_requests[0] == (Vec3(2, 64, 0), 2)
    assert harvester.phase is Phase.IDLE

    terminal = events.event_history[-1]
    assert terminal.kind is EventKind.COMPLETE
    assert terminal.success is True
    assert terminal.reason == "completed"
    assert terminal.data == {"harvested_count": 1, "tree_type": "oak", "max_count": 1, "success": True}


@pytest.mark.asyncio
async def test_one_log_per_tick(harvester, gateway):
    gateway.add_tree(2, 64, 0, height=3)
    harvester.start({"maxCount": 1})

    await harvester.tick(1)
    assert harvester.state.stage is HarvestStage.TRAVELING
    await harvester.tick(2)
    assert harvester.state.stage is HarvestStage.EXTRACTING
    await harvester.tick(3)
    assert len(gateway.dug) == 1
    await harvester.tick(4)
    assert len(gateway.dug) == 2


@pytest.mark.asyncio
async def test_fewer_trees_than_requested_terminates(harvester, gateway, events):
    gateway.add_tree(2, 64, 0, height=2)
    gateway.add_tree(-3, 64, 2, height=2)

    harvester.start(HarvestParams(maxCount=5))
    ticks = await run_until_idle(harvester)

    assert ticks < 200
    progress = events.get_recent_events(EventKind.PROGRESS)
    assert [event.message for event in progress] == ["Harvested any tree 1/5", "Harvested any tree 2/5"]

    terminal = events.event_history[-1]
    assert terminal.kind is EventKind.COMPLETE
    assert terminal.reason == "exhausted"
    assert terminal.success is True
    assert terminal.message == "No more any trees found nearby."
    assert terminal.data["harvested_count"] == 2


@pytest.mark.asyncio
async def test_harvested_count_never_exceeds_max(harvester, gateway, events):
    for x in (-4, -2, 2, 4):
        gateway.add_tree(x, 64, 3, height=1)

    harvester.start(HarvestParams(maxCount=2))
    await run_until_idle(harvester)

    counts = [event.data["harvested_count"] for event in events.event_history if "harvested_count" in event.data]
    assert max(counts) == 2
    assert events.event_history[-1].reason == "completed"
    assert len(gateway.dug) == 2


@pytest.mark.asyncio
async def test_nearest_tree_first(harvester, gateway):
    gateway.add_tree(5, 64, 0, height=1)
    gateway.add_tree(2, 64, 1, height=1)

    harvester.start(HarvestParams(maxCount=1))
    await run_until_idle(harvester)

    assert gateway.dug == [Vec3(2, 64, 1)]


@pytest.mark.asyncio
async def test_ties_broken_by_scan_order(events):
    gateway = FakeWorldGateway(position=Vec3(0, 64, 0))
    gateway.add_tree(2, 64, 0, height=1)
    gateway.add_tree(-2, 64, 0, height=1)
    harvester = Harvester(gateway, events, HarvesterConfig(search_radius=4, vertical_search=1, settle_delay_s=0))

    harvester.start(HarvestParams(maxCount=1))
    await run_until_idle(harvester)

    assert gateway.dug == [Vec3(-2, 64, 0)]


@pytest.mark.asyncio
async def test_search_is_one_gateway_query(harvester, gateway):
    gateway.add_tree(2, 64, 0, height=1)
    gateway.add_tree(1, 70, 0, height=1)
    harvester.start(HarvestParams(treeType="birch", maxCount=1))

    await harvester.tick(1)

    assert len(gateway.block_searches) == 1
    center, names, _, _ = gateway.block_searches[0]
    assert center == Vec3(0.5, 64, 0.5)
    assert names == ("birch_log",)
    assert harvester.state.node is None


@pytest.mark.asyncio
async def test_logs_outside_vertical_band_are_ignored(harvester, gateway, events):
    gateway.add_tree(1, 70, 0, height=1)

    harvester.start(HarvestParams(maxCount=1))
    await run_until_idle(harvester)

    assert gateway.dug == []
    assert events.event_history[-1].reason == "exhausted"


@pytest.mark.asyncio
async def test_tree_type_filter(harvester, gateway):
    gateway.add_tree(1, 64, 1, height=1, wood="birch")
    gateway.add_tree(4, 64, 4, height=1, wood="oak")

    harvester.start(HarvestParams(treeType="oak", maxCount=1))
    await run_until_idle(harvester)

    assert gateway.dug == [Vec3(4, 64, 4)]


@pytest.mark.asyncio
async def test_unreachable_tree_is_skipped(harvester, gateway, events):
    gateway.add_tree(2, 64, 0, height=1)
    gateway.add_tree(4, 64, 0, height=1)
    gateway.travel_outcome = lambda position: TravelOutcome.TIMEOUT if position == Vec3(2, 64, 0) else TravelOutcome.REACHED

    harvester.start(HarvestParams(maxCount=2))
    await run_until_idle(harvester)

    assert gateway.dug == [Vec3(4, 64, 0)]
    assert events.event_history[-1].reason == "exhausted"
    assert events.event_history[-1].data["harvested_count"] == 1


@pytest.mark.asyncio
async def test_dig_error_skips_node(harvester, gateway, events):
    gateway.add_tree(2, 64, 0, height=1)
    gateway.add_tree(4, 64, 0, height=1)
    gateway.dig_errors.add((2, 64, 0))

    harvester.start(HarvestParams(maxCount=1))
    await run_until_idle(harvester)

    assert gateway.dug == [Vec3(4, 64, 0)]
    assert events.event_history[-1].success is True


@pytest.mark.asyncio
async def test_unreachable_tree_is_skipped_as_a_whole(harvester, gateway, events):
    gateway.add_tree(2, 64, 0, height=4)
    gateway.travel_outcome = lambda position: TravelOutcome.TIMEOUT

    harvester.start(HarvestParams(maxCount=1))
    await run_until_idle(harvester)

    assert gateway.travel_requests == [(Vec3(2, 64, 0), 2)]
    assert gateway.dug == []
    assert events.event_history[-1].reason == "exhausted"


@pytest.mark.asyncio
async def test_dig_error_skips_rest_of_trunk(harvester, gateway, events):
    gateway.add_tree(2, 64, 0, height=3)
    gateway.dig_errors.add((2, 64, 0))

    harvester.start(HarvestParams(maxCount=1))
    await run_until_idle(harvester)

    assert gateway.dug == []
    assert events.event_history[-1].reason == "exhausted"
    assert events.event_history[-1].data["harvested_count"] == 0


@pytest.mark.asyncio
async def test_dig_error_mid_trunk_skips_logs_above(harvester, gateway, events):
    gateway.add_tree(2, 64, 0, height=3)
    gateway.dig_errors.add((2, 65, 0))

    harvester.start(HarvestParams(maxCount=1))
    await run_until_idle(harvester)

    assert gateway.dug == [Vec3(2, 64, 0)]
    assert events.event_history[-1].reason == "exhausted"
    assert events.event_history[-1].data["harvested_count"] == 0


@pytest.mark.asyncio
async def test_collects_dropped_logs(harvester, gateway):
    gateway.add_tree(2, 64, 0, height=1)
    gateway.add_entity(50, "item", Vec3(2.5, 64, 1.5), kind="object", item_name="oak_log")
    gateway.add_entity(51, "item", Vec3(1.5, 64, 1.5), kind="object", item_name="dirt")

    harvester.start(HarvestParams(maxCount=1))
    await run_until_idle(harvester)

    assert (Vec3(2.5, 64, 1.5), 1) in gateway.travel_requests
    assert (Vec3(1.5, 64, 1.5), 1) not in gateway.travel_requests


@pytest.mark.asyncio
async def test_waits_after_each_pickup(gateway, events):
    gateway.add_tree(2, 64, 0, height=1)
    gateway.add_entity(50, "item", Vec3(2.5, 64, 1.5), kind="object", item_name="oak_log")
    gateway.add_entity(52, "item", Vec3(1.5, 64, -0.5), kind="object", item_name="birch_log")
    config = HarvesterConfig(search_radius=4, vertical_search=1, settle_delay_s=0, pickup_delay_s=0.75)
    harvester = Harvester(gateway, events, config)

    harvester.start(HarvestParams(maxCount=1))
    with patch("treebot.controllers.harvester.asyncio.sleep", new_callable=AsyncMock) as sleep:
        await run_until_idle(harvester)

    assert sleep.await_args_list.count(call(0.75)) == 2
    assert harvester.state.harvested_count == 1


@pytest.mark.asyncio
async def test_start_while_running_is_rejected(harvester, gateway, events):
    gateway.add_tree(2, 64, 0, height=1)
    harvester.start(HarvestParams(maxCount=1))

    outcome = harvester.start(HarvestParams(maxCount=3))

    assert outcome is StartOutcome.REJECTED
    assert events.event_history[-1].kind is EventKind.REJECTED
    assert events.event_history[-1].message == "I'm already harvesting trees!"
    assert harvester.state.max_count == 1


@pytest.mark.asyncio
async def test_stop_mid_run(harvester, gateway, events):
    gateway.add_tree(2, 64, 0, height=3)
    harvester.start(HarvestParams(maxCount=1))
    await harvester.tick(1)
    await harvester.tick(2)

    assert harvester.stop() is True
    await harvester.tick(3)

    assert harvester.phase is Phase.IDLE
    assert gateway.dug == []
    assert gateway.stop_travel_calls == 1
    assert kinds(events) == [EventKind.START, EventKind.STOP]


@pytest.mark.asyncio
async def test_stop_when_idle_is_noop(harvester, events):
    assert harvester.stop() is False
    assert list(events.event_history) == []
    assert harvester.phase is Phase.IDLE


@pytest.mark.asyncio
async def test_stop_during_travel_is_observed(events):
    release = asyncio.Event()

    class SlowGateway(FakeWorldGateway):
        async def travel_near(self, position, tolerance, timeout):
            await release.wait()
            return TravelOutcome.SUPERSEDED

    gateway = SlowGateway(position=Vec3(0.5, 64, 0.5))
    gateway.add_tree(2, 64, 0, height=1)
    harvester = Harvester(gateway, events, HarvesterConfig(search_radius=4, vertical_search=1, settle_delay_s=0))
    harvester.start(HarvestParams(maxCount=1))
    await harvester.tick(1)

    step = asyncio.ensure_future(harvester.tick(2))
    await asyncio.sleep(0)
    harvester.stop()
    release.set()
    await step

    assert harvester.phase is Phase.IDLE
    assert gateway.dug == []
    assert kinds(events) == [EventKind.START, EventKind.STOP]


@pytest.mark.asyncio
async def test_unexpected_fault_finishes_with_failure(harvester, gateway, events):
    gateway.add_tree(2, 64, 0, height=1)

    async def broken_travel(position, tolerance, timeout):
        raise RuntimeError("pathfinder crashed")

    gateway.travel_near = broken_travel
    harvester.start(HarvestParams(maxCount=1))
    await run_until_idle(harvester)

    terminal = events.event_history[-1]
    assert terminal.kind is EventKind.COMPLETE
    assert terminal.success is False
    assert terminal.reason == "unexpected_fault"
    assert terminal.message == "Something went wrong while harvesting trees."
    assert harvester.phase is Phase.IDLE


@pytest.mark.asyncio
async def test_fresh_state_after_restart(harvester, gateway):
    gateway.add_tree(2, 64, 0, height=1)
    harvester.start(HarvestParams(maxCount=1))
    await run_until_idle(harvester)

    gateway.add_tree(2, 64, 0, height=1)
    harvester.start(HarvestParams(maxCount=1))

    assert harvester.state.harvested_count == 0
    assert harvester.state.visited == set()
